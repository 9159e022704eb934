import dataclasses
import logging

from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError

from clinic.config import ServiceConfig
from clinic.exceptions import ConnectError, ListenError, ShutdownError
from clinic.lifecycle import Lifecycle
from clinic.router import Router
from clinic.shutdown import ShutdownSignal
from clinic.store import PatientStore

logger = logging.getLogger("clinic.serve")


class Command(BaseCommand):
    help = "Connect to the database and serve the patients API until SIGINT/SIGTERM."

    def add_arguments(self, parser):
        parser.add_argument("--host", default="", help="Interface to bind (default: all)")
        parser.add_argument("--port", type=int, default=None, help="Override HTTP_API_PORT")

    def handle(self, *args, **options):
        try:
            config = ServiceConfig.from_settings()
            if options["port"] is not None:
                config = dataclasses.replace(config, port=options["port"])
        except ImproperlyConfigured as exc:
            raise CommandError(f"Failed to load configuration: {exc}") from exc

        for key, value in config.describe().items():
            logger.info("config %s=%r", key, value)
        logger.info("Starting Ferrum server")

        store = PatientStore(config.database_alias)
        router = Router.from_config(config, store)
        shutdown = ShutdownSignal()
        shutdown.install()
        lifecycle = Lifecycle(config, store, shutdown, router.wsgi_application(), host=options["host"])
        try:
            lifecycle.run()
        except ConnectError as exc:
            raise CommandError(f"Failed to connect to database: {exc}") from exc
        except ListenError as exc:
            raise CommandError(f"Failed to start HTTP server: {exc}") from exc
        except ShutdownError as exc:
            raise CommandError(f"Ferrum server exited with error: {exc}") from exc
        finally:
            shutdown.restore()

        logger.info("Ferrum server shut down successfully")
