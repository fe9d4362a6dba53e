# cartshare/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from cartshare.domain.errors import TransientStoreError


def db_retry():
    """
    Retry dla odczytow z bazy - tylko bledy przejsciowe (polaczenie, lock).
    Zapisow nie ponawiamy tutaj, decyduje wywolujacy.
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(TransientStoreError),
    )
