from datetime import datetime, timedelta, timezone

import pytest

from roomchat.auth import Identity, TokenService, generate_key_pair
from roomchat.exceptions import MalformedToken, SignatureInvalid, TokenExpired


@pytest.fixture(scope="module")
def key_pair():
    return generate_key_pair()


@pytest.fixture(scope="module")
def other_key_pair():
    return generate_key_pair()


@pytest.fixture()
def service(key_pair):
    private_pem, public_pem = key_pair
    return TokenService(private_pem, public_pem, lifetime=timedelta(minutes=30))


def test_issue_and_verify_round_trip(service):
    token = service.issue(42, "alice")
    assert service.verify(token) == Identity(user_id=42, username="alice")
    assert service.expires_in == 1800


def test_verifier_needs_only_the_public_key(service, key_pair):
    verifier = TokenService(None, key_pair[1])
    assert verifier.verify(service.issue(7, "bob")).username == "bob"

    with pytest.raises(RuntimeError):
        verifier.issue(7, "bob")


def test_expired_token_is_rejected(service):
    issued_at = datetime.now(timezone.utc) - timedelta(hours=1)
    token = service.issue(1, "alice", issued_at=issued_at)

    with pytest.raises(TokenExpired):
        service.verify(token)


def test_expired_token_is_rejected_regardless_of_signature(service, other_key_pair):
    forger = TokenService(other_key_pair[0], other_key_pair[1], lifetime=timedelta(minutes=30))
    token = forger.issue(1, "alice", issued_at=datetime.now(timezone.utc) - timedelta(hours=1))

    with pytest.raises(TokenExpired):
        service.verify(token)


def test_foreign_signature_is_rejected(service, other_key_pair):
    forger = TokenService(other_key_pair[0], other_key_pair[1])
    token = forger.issue(1, "alice")

    with pytest.raises(SignatureInvalid):
        service.verify(token)


def test_tampered_payload_is_rejected(service):
    header, payload, signature = service.issue(1, "alice").split(".")
    other_payload = service.issue(2, "mallory").split(".")[1]

    with pytest.raises(SignatureInvalid):
        service.verify(".".join([header, other_payload, signature]))


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_malformed_token_is_rejected(service, token):
    with pytest.raises(MalformedToken):
        service.verify(token)


def test_from_settings_derives_public_key(key_pair, service):
    class Config:
        JWT_PRIVATE_KEY = key_pair[0]
        JWT_PUBLIC_KEY = ""
        JWT_PRIVATE_KEY_FILE = ""
        JWT_PUBLIC_KEY_FILE = ""
        ALGORITHM = "RS256"
        ACCESS_TOKEN_EXPIRE_MINUTES = 5

    configured = TokenService.from_settings(Config)
    assert configured.expires_in == 300
    assert configured.verify(service.issue(3, "carol")).user_id == 3


def test_from_settings_reads_pem_files(tmp_path, key_pair, service):
    private_file = tmp_path / "private.pem"
    public_file = tmp_path / "public.pem"
    private_file.write_text(key_pair[0])
    public_file.write_text(key_pair[1])

    class Config:
        JWT_PRIVATE_KEY = ""
        JWT_PUBLIC_KEY = ""
        JWT_PRIVATE_KEY_FILE = str(private_file)
        JWT_PUBLIC_KEY_FILE = str(public_file)
        ALGORITHM = "RS256"
        ACCESS_TOKEN_EXPIRE_MINUTES = 5

    configured = TokenService.from_settings(Config)
    assert configured.verify(configured.issue(4, "dave")).username == "dave"
    assert service.verify(configured.issue(4, "dave")).username == "dave"
