from typing import Protocol

from .models import TokenCheckOutput


class ResetTokenCodecPort(Protocol):
    """Signs and checks password reset tokens. Implementations must be pure."""

    def issue(self, email: str, expires_at_ms: int, install_secret: str, verifier: str) -> str: ...

    def extract(self, token: str, install_secret: str) -> TokenCheckOutput: ...

    def verify(
        self, token: str, install_secret: str, verifier: str, now_ms: int
    ) -> TokenCheckOutput: ...
