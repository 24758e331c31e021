from proofpass.issuer.base import Content, CredentialIssuer, IssuerError
from proofpass.issuer.ledger import LedgerCredentialIssuer
from proofpass.issuer.mock import MockCredentialIssuer


def build_issuer(settings) -> CredentialIssuer:
    """Pick the issuer backend named by ``settings.ISSUER_BACKEND``."""
    backend = settings.ISSUER_BACKEND.lower()
    if backend == "mock":
        return MockCredentialIssuer()
    if backend == "ledger":
        return LedgerCredentialIssuer(
            ledger_url=settings.LEDGER_API_URL,
            pinning_url=settings.PINNING_API_URL,
            ledger_token=settings.LEDGER_API_TOKEN,
            pinning_token=settings.PINNING_API_TOKEN,
            timeout=settings.ISSUER_TIMEOUT_SECONDS,
        )
    raise ValueError(f"Unknown ISSUER_BACKEND {settings.ISSUER_BACKEND!r}")


__all__ = [
    "Content",
    "CredentialIssuer",
    "IssuerError",
    "LedgerCredentialIssuer",
    "MockCredentialIssuer",
    "build_issuer",
]
