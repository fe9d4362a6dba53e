import itertools
import re

import pytest

from cartshare.domain.errors import TransientStoreError
from cartshare.services.token_service import TokenGenerator, build_share_url, encode_token

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def test_token_is_url_safe_without_padding():
    gen = TokenGenerator(exists=lambda t: False)

    tokens = {gen.generate() for _ in range(200)}

    assert len(tokens) == 200
    for token in tokens:
        assert URL_SAFE.match(token)
        assert "=" not in token
        # 24 bajty -> 32 znaki base64
        assert len(token) == 32


def test_encode_token_maps_base64_alphabet():
    # 0xfb 0xff -> "+/8=" w zwyklym base64
    assert encode_token(b"\xfb\xff") == "-_8"


def test_requires_minimum_entropy():
    with pytest.raises(ValueError):
        TokenGenerator(exists=lambda t: False, entropy_bytes=16)


def test_retries_on_collision():
    taken = encode_token(b"\x00" * 24)
    raw = iter([b"\x00" * 24, b"\x00" * 24, b"\x01" * 24])
    checked = []

    def exists(token):
        checked.append(token)
        return token == taken

    gen = TokenGenerator(exists=exists, random_bytes=lambda n: next(raw))

    token = gen.generate()

    assert token == encode_token(b"\x01" * 24)
    assert checked == [taken, taken, token]


def test_gives_up_after_max_attempts():
    gen = TokenGenerator(
        exists=lambda t: True,
        max_attempts=3,
        random_bytes=lambda n: b"\x07" * n,
    )

    with pytest.raises(TransientStoreError):
        gen.generate()


def test_uniqueness_check_failure_propagates():
    def exists(token):
        raise TransientStoreError()

    gen = TokenGenerator(exists=exists)

    with pytest.raises(TransientStoreError):
        gen.generate()


def test_shared_tokens_are_unique_across_records(share, service):
    created = [share() for _ in range(25)]

    tokens = [c["share_token"] for c in created]
    assert len(set(tokens)) == len(tokens)
    for token in tokens:
        assert service.repo.token_exists(token)


def test_build_share_url():
    assert build_share_url("abc", "https://shop.example/") == "https://shop.example/checkout?shared=abc"


def test_counter_based_random_never_collides():
    counter = itertools.count()
    gen = TokenGenerator(
        exists=lambda t: False,
        random_bytes=lambda n: next(counter).to_bytes(n, "big"),
    )

    assert gen.generate() != gen.generate()


def test_entropy_is_capped_at_column_width():
    with pytest.raises(ValueError):
        TokenGenerator(exists=lambda t: False, entropy_bytes=49)

    token = TokenGenerator(exists=lambda t: False, entropy_bytes=48).generate()
    assert len(token) == 64
