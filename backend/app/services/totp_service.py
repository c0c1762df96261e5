"""
TOTP Service
Secret generation, provisioning URIs and time-step code verification (RFC 6238).
"""

import time
from dataclasses import dataclass
from typing import Optional

import pyotp
import segno

CODE_DIGITS = 6
STEP_SECONDS = 30


@dataclass
class TotpEnrollment:
    secret: str
    provisioning_uri: str


class TotpEngine:
    """Generates and verifies 6-digit, 30-second TOTP codes."""

    def __init__(self, issuer: str, valid_window: int = 1):
        self.issuer = issuer
        self.valid_window = valid_window

    def generate_secret(self, account_name: str) -> TotpEnrollment:
        """Create a 160-bit base32 secret and the otpauth:// URI for authenticator apps."""
        secret = pyotp.random_base32(length=32)
        uri = pyotp.TOTP(secret, digits=CODE_DIGITS, interval=STEP_SECONDS).provisioning_uri(
            name=account_name,
            issuer_name=self.issuer,
        )
        return TotpEnrollment(secret=secret, provisioning_uri=uri)

    @staticmethod
    def qr_data_uri(provisioning_uri: str) -> str:
        """Render the provisioning URI as a PNG data URI for the setup screen."""
        return segno.make(provisioning_uri, error="M").png_data_uri(scale=5)

    def verify_code(
        self,
        secret: str,
        code: Optional[str],
        window_steps: Optional[int] = None,
        for_time: Optional[float] = None,
    ) -> bool:
        """
        Accept code if it matches the current time step or any step within
        +/- window_steps of it. Anything that is not exactly six digits is
        rejected without computing an HMAC.
        """
        if not secret or code is None:
            return False
        code = str(code).strip()
        if len(code) != CODE_DIGITS or not code.isascii() or not code.isdigit():
            return False

        window = self.valid_window if window_steps is None else window_steps
        totp = pyotp.TOTP(secret, digits=CODE_DIGITS, interval=STEP_SECONDS)
        now = time.time() if for_time is None else for_time
        return totp.verify(code, for_time=int(now), valid_window=window)
