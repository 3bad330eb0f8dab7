"""Candidate identity router — registration, linking and OTP merge endpoints.

Endpoints
---------
GET  /registration-status      → is the caller's profile complete
POST /register                 → register or complete the caller's profile
POST /link                     → attach the caller to an existing profile
POST /send-email-otp           → email a one-time code
POST /send-merge-phone-otp     → text a one-time code
POST /verify-email-and-merge   → redeem an email code and merge
POST /verify-phone-and-merge   → redeem a phone code and merge
POST /verify-email-otp         → redeem an email code for a sign-in token
GET  /me                       → the caller's profile
PUT  /profile                  → update the caller's profile
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from candidate_identity.api.dependencies import get_coordinator, get_identity
from candidate_identity.identity.assertion import IdentityAssertion
from candidate_identity.identity.coordinator import ProfileLinkCoordinator
from candidate_identity.models.candidate import Candidate
from candidate_identity.services.otp_challenge import Channel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/candidate", tags=["candidate-identity"])


# ── Response / request models ────────────────────────────

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegistrationStatusResponse(BaseModel):
    success: bool = True
    complete: bool


class RegisterRequest(_CamelModel):
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    email: str = ""
    phone: str = ""


class CandidateIdResponse(_CamelModel):
    success: bool = True
    candidate_id: int = Field(alias="candidateId")


class LinkResponse(_CamelModel):
    success: bool = True
    registered: bool
    candidate_id: int | None = Field(default=None, alias="candidateId")


class EmailCodeRequest(BaseModel):
    email: str = ""
    code: str = ""


class PhoneCodeRequest(BaseModel):
    phone: str = ""
    code: str = ""


class EmailOTPRequest(BaseModel):
    email: str = ""


class PhoneOTPRequest(BaseModel):
    phone: str = ""


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class SignInTokenResponse(BaseModel):
    success: bool = True
    token: str


class ProfileResponse(_CamelModel):
    candidate_id: int = Field(alias="candidateId")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str
    phone: str
    address: str | None = None
    city: str | None = None
    state: str | None = None
    tenth_percentage: float | None = Field(default=None, alias="tenthPercentage")
    twelfth_percentage: float | None = Field(default=None, alias="twelfthPercentage")
    degree: str | None = None
    degree_cgpa: float | None = Field(default=None, alias="degreeCgpa")

    @classmethod
    def of(cls, candidate: Candidate) -> ProfileResponse:
        return cls(
            candidate_id=candidate.id,
            first_name=candidate.first_name,
            last_name=candidate.last_name,
            email=candidate.email,
            phone=candidate.phone,
            address=candidate.address,
            city=candidate.city,
            state=candidate.state,
            tenth_percentage=candidate.tenth_percentage,
            twelfth_percentage=candidate.twelfth_percentage,
            degree=candidate.degree,
            degree_cgpa=candidate.degree_cgpa,
        )


class ProfileUpdateRequest(_CamelModel):
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    degree: str | None = None
    # "" clears a score
    tenth_percentage: float | str | None = Field(default=None, alias="tenthPercentage")
    twelfth_percentage: float | str | None = Field(default=None, alias="twelfthPercentage")
    degree_cgpa: float | str | None = Field(default=None, alias="degreeCgpa")


# ── Registration ─────────────────────────────────────────

@router.get("/registration-status", response_model=RegistrationStatusResponse)
async def registration_status(
    identity: IdentityAssertion = Depends(get_identity),
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    """Report whether the caller has a complete profile; never 404s."""
    complete = await coordinator.registration_status(identity.subject_id)
    return RegistrationStatusResponse(complete=complete)


@router.post("/register", response_model=CandidateIdResponse)
async def register(
    body: RegisterRequest,
    identity: IdentityAssertion = Depends(get_identity),
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    """Register or complete the caller's profile (409 on a merge conflict)."""
    candidate_id = await coordinator.register(
        identity, body.first_name, body.last_name, body.email, body.phone
    )
    return CandidateIdResponse(candidate_id=candidate_id)


@router.post("/link", response_model=LinkResponse)
async def link(
    identity: IdentityAssertion = Depends(get_identity),
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    """Attach the caller to an existing unbound profile, if one matches."""
    result = await coordinator.link(identity)
    return LinkResponse(registered=result.registered, candidate_id=result.candidate_id)


# ── OTP ──────────────────────────────────────────────────

@router.post("/send-email-otp", response_model=MessageResponse)
async def send_email_otp(
    body: EmailOTPRequest,
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    await coordinator.send_otp(body.email, Channel.EMAIL)
    return MessageResponse(message="OTP sent to your email")


@router.post("/send-merge-phone-otp", response_model=MessageResponse)
async def send_merge_phone_otp(
    body: PhoneOTPRequest,
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    await coordinator.send_otp(body.phone, Channel.SMS)
    return MessageResponse(message="OTP sent to your phone")


@router.post("/verify-email-and-merge", response_model=CandidateIdResponse)
async def verify_email_and_merge(
    body: EmailCodeRequest,
    identity: IdentityAssertion = Depends(get_identity),
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    candidate_id = await coordinator.verify_and_merge(identity, body.email, body.code, Channel.EMAIL)
    return CandidateIdResponse(candidate_id=candidate_id)


@router.post("/verify-phone-and-merge", response_model=CandidateIdResponse)
async def verify_phone_and_merge(
    body: PhoneCodeRequest,
    identity: IdentityAssertion = Depends(get_identity),
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    candidate_id = await coordinator.verify_and_merge(identity, body.phone, body.code, Channel.SMS)
    return CandidateIdResponse(candidate_id=candidate_id)


@router.post("/verify-email-otp", response_model=SignInTokenResponse)
async def verify_email_otp(
    body: EmailCodeRequest,
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    """Exchange an emailed code for an identity-provider sign-in token."""
    token = await coordinator.sign_in_with_email_code(body.email, body.code)
    return SignInTokenResponse(token=token)


# ── Profile ──────────────────────────────────────────────

@router.get("/me", response_model=ProfileResponse)
async def get_me(
    identity: IdentityAssertion = Depends(get_identity),
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    candidate = await coordinator.get_profile(identity.subject_id)
    return ProfileResponse.of(candidate)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    identity: IdentityAssertion = Depends(get_identity),
    coordinator: ProfileLinkCoordinator = Depends(get_coordinator),
):
    candidate = await coordinator.update_profile(
        identity.subject_id, body.model_dump(exclude_unset=True)
    )
    return ProfileResponse.of(candidate)
