import pytest

from saasresto.services.passwords import (
    hash_password,
    strong_password_error,
    team_password_error,
    verify_password,
    verify_password_async,
)


def test_hash_and_verify():
    password_hash = hash_password("Demo12345!")

    assert password_hash.startswith("$2b$")
    assert verify_password("Demo12345!", password_hash)
    assert not verify_password("demo12345!", password_hash)


def test_verify_rejects_empty_or_malformed_hash():
    assert not verify_password("anything", "")
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_passwords_longer_than_bcrypt_limit_are_accepted():
    long_password = "x" * 100
    password_hash = hash_password(long_password)

    assert verify_password(long_password, password_hash)


@pytest.mark.asyncio
async def test_async_verify_runs_the_same_check():
    password_hash = hash_password("Demo12345!")

    assert await verify_password_async("Demo12345!", password_hash)
    assert not await verify_password_async("nope", password_hash)


@pytest.mark.parametrize(
    "password, ok",
    [
        ("Margherita123", True),
        ("short1", False),
        ("onlyletterslong", False),
        ("1234567890", False),
    ],
)
def test_strong_password_rule(password, ok):
    assert (strong_password_error(password) is None) is ok


@pytest.mark.parametrize(
    "password, ok",
    [
        ("Kitchen#2024", True),
        ("Kit#20", False),
        ("kitchen#2024", False),
        ("KITCHEN#2024", False),
        ("Kitchen#Cook", False),
        ("Kitchen2024", False),
    ],
)
def test_team_password_rule(password, ok):
    assert (team_password_error(password) is None) is ok
