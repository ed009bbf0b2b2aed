"""Command-line runner: ``bank-aml ingestion`` or ``bank-aml screening``."""

import argparse

import uvicorn

from bank_aml.config import Settings, settings

SERVICES = {
    "ingestion": ("bank_aml.main:ingestion_app", "ingestion_service_port"),
    "screening": ("bank_aml.main:screening_app", "fraud_detection_service_port"),
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bank-aml", description="Run a screening service")
    parser.add_argument("service", choices=sorted(SERVICES), help="service to run")
    parser.add_argument("--host", type=str, help="bind address (default: HOST)")
    parser.add_argument("--port", type=int, help="listen port (default: the service's *_PORT)")
    return parser.parse_args(argv)


def run(service: str, config: Settings, host: str | None = None, port: int | None = None) -> None:
    app_path, port_field = SERVICES[service]
    uvicorn.run(
        app_path,
        host=host or config.host,
        port=port if port is not None else getattr(config, port_field),
        timeout_graceful_shutdown=int(config.shutdown_grace_seconds),
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    run(args.service, settings, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
