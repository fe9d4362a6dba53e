# cartshare/services/token_service.py
import base64
import secrets
from typing import Callable

from cartshare.domain.errors import TransientStoreError
from cartshare.utils.logging import get_logger
from cartshare.utils.settings import SHARE_BASE_URL, SHARE_TOKEN_BYTES, SHARE_TOKEN_MAX_ATTEMPTS

logger = get_logger(__name__)

MIN_TOKEN_BYTES = 18
# base64url z 48 bajtow = 64 znaki = share_token String(64)
MAX_TOKEN_BYTES = 48


def encode_token(raw: bytes) -> str:
    #base64url bez paddingu: + -> -, / -> _, bez =
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def build_share_url(token: str, base_url: str | None = None) -> str:
    base = (base_url or SHARE_BASE_URL).rstrip("/")
    return f"{base}/checkout?shared={token}"


class TokenGenerator:
    """
    Generuje tokeny linkow (sekret = jedyne uprawnienie odbiorcy).
    Kazdy kandydat jest sprawdzany w store; przy kolizji losujemy od nowa.
    Przy >=144 bitach kolizja jest praktycznie niemozliwa, ale petla musi byc.
    """

    def __init__(
        self,
        exists: Callable[[str], bool],
        entropy_bytes: int = SHARE_TOKEN_BYTES,
        max_attempts: int = SHARE_TOKEN_MAX_ATTEMPTS,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ):
        if entropy_bytes < MIN_TOKEN_BYTES:
            raise ValueError(f"Share tokens need at least {MIN_TOKEN_BYTES} bytes of entropy")
        if entropy_bytes > MAX_TOKEN_BYTES:
            raise ValueError(f"Share tokens can use at most {MAX_TOKEN_BYTES} bytes of entropy")
        self.exists = exists
        self.entropy_bytes = entropy_bytes
        self.max_attempts = max_attempts
        self.random_bytes = random_bytes

    def generate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            token = encode_token(self.random_bytes(self.entropy_bytes))
            if not self.exists(token):
                return token
            logger.warning(f"Share token collision, retrying (attempt {attempt}/{self.max_attempts})")

        raise TransientStoreError("Could not allocate a unique share link, please retry.")
