"""Email verification codes: send and verify."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from user_service.api.deps import get_mail_gateway, get_verification_store
from user_service.config import settings
from user_service.core.rate_limit import limiter
from user_service.schemas.auth import EmailBody, VerifyCodeBody
from user_service.schemas.envelope import ResponseEnvelope
from user_service.services import verification
from user_service.services.mail import SmtpMailGateway
from user_service.services.verification_codes import VerificationCodeStore

router = APIRouter(prefix="/mail", tags=["mail"])


@router.post(
    "/send-verification-code",
    response_model=ResponseEnvelope,
    summary="Mail a one-time verification code",
    responses={
        400: {"description": "Malformed email address"},
        502: {"description": "Mail server or verification store unavailable"},
    },
)
@limiter.limit(settings.verification_send_rate_limit)
async def send_verification_code(
    request: Request,
    store: Annotated[VerificationCodeStore, Depends(get_verification_store)],
    mailer: Annotated[SmtpMailGateway, Depends(get_mail_gateway)],
    body: EmailBody,
) -> ResponseEnvelope:
    await verification.send_verification_code(
        store,
        mailer,
        body.email,
        subject=settings.verification_mail_subject,
        code_length=settings.verification_code_length,
    )
    return ResponseEnvelope()


@router.post(
    "/verify-code",
    response_model=ResponseEnvelope,
    summary="Check a verification code",
    responses={400: {"description": "Verification code mismatch or expired"}},
)
async def verify_code(
    store: Annotated[VerificationCodeStore, Depends(get_verification_store)],
    body: VerifyCodeBody,
) -> ResponseEnvelope:
    await verification.verify_code(store, body.email, body.verification_code)
    return ResponseEnvelope()
