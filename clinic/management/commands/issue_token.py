from django.core.management.base import BaseCommand, CommandError

from clinic.config import ServiceConfig
from clinic.exceptions import TokenError
from clinic.tokens import TokenIssuer


class Command(BaseCommand):
    help = "Print a bearer token signed with HTTP_JWT_SIGNING_KEY (same as GET /generate-token)."

    def handle(self, *args, **options):
        config = ServiceConfig.from_settings()
        issuer = TokenIssuer(config.signing_key, config.claim_name, config.token_lifetime_delta)
        try:
            token = issuer.issue()
        except TokenError as exc:
            raise CommandError(str(exc)) from exc
        self.stdout.write(token)
