"""HTTP tests for the candidate identity router."""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from candidate_identity.api.dependencies import get_identity_provider, get_otp_service
from candidate_identity.database.engine import get_session
from candidate_identity.errors import AuthenticationError
from candidate_identity.identity.assertion import IdentityAssertion
from candidate_identity.main import app
from candidate_identity.services.otp_challenge import Channel, OtpChallengeService

from conftest import FakeSender


class FakeIdentityProvider:
    """Maps bearer tokens straight to identities."""

    is_configured = True

    def __init__(self) -> None:
        self.tokens: dict[str, IdentityAssertion] = {}

    async def verify(self, id_token: str) -> IdentityAssertion:
        try:
            return self.tokens[id_token]
        except KeyError:
            raise AuthenticationError("Invalid token. Please sign in again.") from None

    async def custom_token_for_email(self, email: str) -> str:
        return f"custom:{email}"


@pytest.fixture
def provider():
    fake = FakeIdentityProvider()
    fake.tokens["token-s1"] = IdentityAssertion("S1")
    fake.tokens["token-s1-google"] = IdentityAssertion("S1", email="a@x.com")
    return fake


@pytest_asyncio.fixture
async def client(db_session, otp_service, provider):
    async def _session():
        yield db_session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_otp_service] = lambda: otp_service
    app.dependency_overrides[get_identity_provider] = lambda: provider

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


def _auth(token="token-s1") -> dict:
    return {"Authorization": f"Bearer {token}"}


REGISTRATION = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "a@x.com",
    "phone": "+1 415 555 0100",
}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_missing_or_bad_token_is_401(client):
    assert (await client.get("/api/candidate/registration-status")).status_code == 401
    response = await client.get("/api/candidate/registration-status", headers=_auth("bogus"))
    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_register_then_status(client):
    before = await client.get("/api/candidate/registration-status", headers=_auth())
    assert before.json() == {"success": True, "complete": False}

    response = await client.post("/api/candidate/register", json=REGISTRATION, headers=_auth())
    assert response.status_code == 200
    assert isinstance(response.json()["candidateId"], int)

    after = await client.get("/api/candidate/registration-status", headers=_auth())
    assert after.json()["complete"] is True


@pytest.mark.asyncio
async def test_register_invalid_field_is_400(client):
    body = {**REGISTRATION, "email": "nope"}
    response = await client.post("/api/candidate/register", json=body, headers=_auth())

    assert response.status_code == 400
    assert response.json()["field"] == "email"


@pytest.mark.asyncio
async def test_register_conflict_is_409_with_type(client, make_candidate):
    await make_candidate("a@x.com", "14155550111", subject_id="S2")

    response = await client.post("/api/candidate/register", json=REGISTRATION, headers=_auth())

    assert response.status_code == 409
    assert response.json()["conflictType"] == "email"


@pytest.mark.asyncio
async def test_register_with_provider_vouched_email_relinks(client, make_candidate):
    owner = await make_candidate("a@x.com", "14155550111", subject_id="S2")

    response = await client.post(
        "/api/candidate/register", json=REGISTRATION, headers=_auth("token-s1-google")
    )

    assert response.status_code == 200
    assert response.json()["candidateId"] == owner.id


@pytest.mark.asyncio
async def test_email_otp_merge_flow(client, make_candidate, email_sender):
    owner = await make_candidate("a@x.com", "14155550111", subject_id="S2")

    sent = await client.post("/api/candidate/send-email-otp", json={"email": "A@x.com"})
    assert sent.status_code == 200
    code = email_sender.last_code

    wrong = "000000" if code != "000000" else "111111"
    bad = await client.post(
        "/api/candidate/verify-email-and-merge", json={"email": "a@x.com", "code": wrong}, headers=_auth()
    )
    assert bad.status_code == 400
    assert bad.json()["reason"] == "invalid"

    merged = await client.post(
        "/api/candidate/verify-email-and-merge", json={"email": "a@x.com", "code": code}, headers=_auth()
    )
    assert merged.status_code == 200
    assert merged.json()["candidateId"] == owner.id

    again = await client.post(
        "/api/candidate/verify-email-and-merge", json={"email": "a@x.com", "code": code}, headers=_auth()
    )
    assert again.status_code == 400
    assert again.json()["reason"] == "not_found"


@pytest.mark.asyncio
async def test_phone_merge_without_profile_is_404(client, sms_sender):
    await client.post("/api/candidate/send-merge-phone-otp", json={"phone": "14155550100"})

    response = await client.post(
        "/api/candidate/verify-phone-and-merge",
        json={"phone": "14155550100", "code": sms_sender.last_code},
        headers=_auth(),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unconfigured_channels(client, ledger):
    unconfigured = OtpChallengeService(
        ledger,
        {Channel.EMAIL: FakeSender(configured=False), Channel.SMS: FakeSender(configured=False)},
    )
    app.dependency_overrides[get_otp_service] = lambda: unconfigured

    email = await client.post("/api/candidate/send-email-otp", json={"email": "a@x.com"})
    sms = await client.post("/api/candidate/send-merge-phone-otp", json={"phone": "14155550100"})

    assert email.status_code == 503
    assert sms.status_code == 501


@pytest.mark.asyncio
async def test_send_otp_rejects_bad_contact(client):
    response = await client.post("/api/candidate/send-email-otp", json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_link_reports_not_registered(client):
    response = await client.post("/api/candidate/link", headers=_auth())

    assert response.status_code == 200
    assert response.json() == {"success": True, "registered": False, "candidateId": None}


@pytest.mark.asyncio
async def test_link_attaches_placeholder(client, make_candidate):
    placeholder = await make_candidate("a@x.com", "14155550111")

    response = await client.post("/api/candidate/link", headers=_auth("token-s1-google"))

    assert response.json()["registered"] is True
    assert response.json()["candidateId"] == placeholder.id


@pytest.mark.asyncio
async def test_email_code_sign_in(client, email_sender):
    await client.post("/api/candidate/send-email-otp", json={"email": "a@x.com"})

    response = await client.post(
        "/api/candidate/verify-email-otp", json={"email": "a@x.com", "code": email_sender.last_code}
    )

    assert response.status_code == 200
    assert response.json()["token"] == "custom:a@x.com"


@pytest.mark.asyncio
async def test_profile_routes(client, make_candidate):
    assert (await client.get("/api/candidate/me", headers=_auth())).status_code == 403

    await make_candidate("a@x.com", "14155550100", subject_id="S1")
    updated = await client.put(
        "/api/candidate/profile",
        json={"city": "Austin", "degreeCgpa": 9.1},
        headers=_auth(),
    )
    assert updated.status_code == 200

    profile = (await client.get("/api/candidate/me", headers=_auth())).json()
    assert profile["city"] == "Austin"
    assert profile["degreeCgpa"] == 9.1
    assert profile["email"] == "a@x.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [None, 12345])
async def test_non_string_contact_is_400(client, value):
    response = await client.post("/api/candidate/send-email-otp", json={"email": value})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["field"] == "email"


@pytest.mark.asyncio
async def test_non_string_code_is_400(client):
    response = await client.post(
        "/api/candidate/verify-email-and-merge", json={"email": "a@x.com", "code": 123456}, headers=_auth()
    )

    assert response.status_code == 400
    assert response.json()["field"] == "code"
