"""
passgate HTTP API

A single POST endpoint dispatching on the ``method`` field of the JSON body:

    {"method": "verifyOtp", "args": {"identifier": "...", "otp": "..."}}

Each method is its own request model in a discriminated union and knows how
to run itself against an ``Auth`` instance.

Status codes:
- 400: malformed body (``invalid_request``)
- 500: storage/transport failure (``internal_error``)
- 401: ``getSession`` without a valid session
- 200: everything else, including auth outcome failures
"""

from contextlib import asynccontextmanager
from typing import Annotated, Any, Callable, ClassVar, Dict, List, Literal, Optional, Union

import structlog
from fastapi import APIRouter, FastAPI, Request, Response
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from passgate.adapters.base import SessionTransport
from passgate.adapters.transports import (
    CookieSessionTransport,
    HeaderSessionTransport,
    SessionCookieOptions,
)
from passgate.auth.results import AuthErrorCode, AuthResult
from passgate.auth.service import Auth
from passgate.core.config import PassgateSettings
from passgate.logging import setup_logging
from passgate.webauthn.types import AuthenticationCredential, RegistrationCredential

logger = structlog.get_logger(__name__)

TransportFactory = Callable[[Request, Response], SessionTransport]

AttachmentName = Literal["platform", "cross-platform"]


# === Credential Models ===


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegistrationResponseModel(_CamelModel):
    client_data_json: str = Field(..., alias="clientDataJSON")
    attestation_object: str = Field(..., alias="attestationObject")
    transports: Optional[List[str]] = None  # hints, passed through unchecked


class RegistrationCredentialModel(_CamelModel):
    """Credential from navigator.credentials.create()."""
    id: str
    raw_id: str = Field(..., alias="rawId")
    type: Literal["public-key"]
    response: RegistrationResponseModel
    authenticator_attachment: Optional[AttachmentName] = Field(default=None, alias="authenticatorAttachment")
    client_extension_results: Dict[str, Any] = Field(default_factory=dict, alias="clientExtensionResults")

    def to_credential(self) -> RegistrationCredential:
        return RegistrationCredential.from_json(self.model_dump(by_alias=True))


class AuthenticationResponseModel(_CamelModel):
    client_data_json: str = Field(..., alias="clientDataJSON")
    authenticator_data: str = Field(..., alias="authenticatorData")
    signature: str
    user_handle: Optional[str] = Field(default=None, alias="userHandle")


class AuthenticationCredentialModel(_CamelModel):
    """Credential from navigator.credentials.get()."""
    id: str
    raw_id: str = Field(..., alias="rawId")
    type: Literal["public-key"]
    response: AuthenticationResponseModel
    authenticator_attachment: Optional[AttachmentName] = Field(default=None, alias="authenticatorAttachment")
    client_extension_results: Dict[str, Any] = Field(default_factory=dict, alias="clientExtensionResults")

    def to_credential(self) -> AuthenticationCredential:
        return AuthenticationCredential.from_json(self.model_dump(by_alias=True))


# === Method Arguments ===


class NoArgs(BaseModel):
    pass


class IdentifierArgs(BaseModel):
    identifier: str


class VerifyOtpArgs(BaseModel):
    identifier: str
    otp: str


class RegistrationTokenArgs(_CamelModel):
    registration_token: str = Field(..., alias="registrationToken")


class VerifyRegistrationArgs(_CamelModel):
    registration_token: str = Field(..., alias="registrationToken")
    credential: RegistrationCredentialModel


class VerifyAuthenticationArgs(BaseModel):
    credential: AuthenticationCredentialModel


# === Method Requests ===


class _MethodRequest(BaseModel):
    # Status used when run() reports a failure
    failure_status: ClassVar[int] = 200

    async def run(self, auth: Auth) -> AuthResult:
        raise NotImplementedError


class RequestOtpRequest(_MethodRequest):
    method: Literal["requestOtp"]
    args: IdentifierArgs

    async def run(self, auth: Auth) -> AuthResult:
        return await auth.request_otp(self.args.identifier)


class VerifyOtpRequest(_MethodRequest):
    method: Literal["verifyOtp"]
    args: VerifyOtpArgs

    async def run(self, auth: Auth) -> AuthResult:
        return await auth.verify_otp(self.args.identifier, self.args.otp)


class GenerateRegistrationOptionsRequest(_MethodRequest):
    method: Literal["generateRegistrationOptions"]
    args: RegistrationTokenArgs

    async def run(self, auth: Auth) -> AuthResult:
        return await auth.generate_registration_options(self.args.registration_token)


class VerifyRegistrationRequest(_MethodRequest):
    method: Literal["verifyRegistration"]
    args: VerifyRegistrationArgs

    async def run(self, auth: Auth) -> AuthResult:
        return await auth.verify_registration(
            self.args.registration_token,
            self.args.credential.to_credential(),
        )


class GenerateAuthenticationOptionsRequest(_MethodRequest):
    method: Literal["generateAuthenticationOptions"]
    args: NoArgs = Field(default_factory=NoArgs)

    async def run(self, auth: Auth) -> AuthResult:
        return await auth.generate_authentication_options()


class VerifyAuthenticationRequest(_MethodRequest):
    method: Literal["verifyAuthentication"]
    args: VerifyAuthenticationArgs

    async def run(self, auth: Auth) -> AuthResult:
        return await auth.verify_authentication(self.args.credential.to_credential())


class GetSessionRequest(_MethodRequest):
    method: Literal["getSession"]
    args: NoArgs = Field(default_factory=NoArgs)

    failure_status: ClassVar[int] = 401

    async def run(self, auth: Auth) -> AuthResult:
        session = await auth.get_session()
        if session is None:
            return AuthResult.fail(AuthErrorCode.INVALID_TOKEN)
        return AuthResult.ok(session=session)


class SignOutRequest(_MethodRequest):
    method: Literal["signOut"]
    args: NoArgs = Field(default_factory=NoArgs)

    async def run(self, auth: Auth) -> AuthResult:
        await auth.sign_out()
        return AuthResult.ok()


AuthRequest = Annotated[
    Union[
        RequestOtpRequest,
        VerifyOtpRequest,
        GenerateRegistrationOptionsRequest,
        VerifyRegistrationRequest,
        GenerateAuthenticationOptionsRequest,
        VerifyAuthenticationRequest,
        GetSessionRequest,
        SignOutRequest,
    ],
    Field(discriminator="method"),
]

_request_adapter: TypeAdapter = TypeAdapter(AuthRequest)


def parse_auth_request(body: Any) -> _MethodRequest:
    """Validate a decoded JSON body into one method request."""
    return _request_adapter.validate_python(body)


# === Transports ===


def cookie_transport_factory(options: Optional[SessionCookieOptions] = None) -> TransportFactory:
    """Session token in a cookie, written onto the outgoing response."""
    cookie_options = options or SessionCookieOptions()

    def factory(request: Request, response: Response) -> SessionTransport:
        return CookieSessionTransport(
            get_cookie=request.cookies.get,
            set_cookie=response.set_cookie,
            options=cookie_options,
        )

    return factory


def header_transport_factory(header: str = "authorization") -> TransportFactory:
    """Session token from a bearer header; new tokens go in the response body."""

    def factory(request: Request, response: Response) -> SessionTransport:
        def get_token() -> Optional[str]:
            value = request.headers.get(header)
            if not value:
                return None
            scheme, _, token = value.partition(" ")
            if scheme.lower() == "bearer" and token:
                return token.strip()
            return value.strip()

        return HeaderSessionTransport(get_token)

    return factory


# === Router ===


def create_auth_router(
    auth: Auth,
    prefix: str = "/auth",
    transport_factory: Optional[TransportFactory] = None,
) -> APIRouter:
    """
    Create the auth API router.

    Args:
        auth: Auth instance (storage, codecs and challenges are shared)
        prefix: Route prefix
        transport_factory: Builds the session transport for each request;
            defaults to a cookie transport
    """
    router = APIRouter(prefix=prefix, tags=["Auth"])
    make_transport = transport_factory or cookie_transport_factory()

    @router.post("")
    async def handle(request: Request, response: Response) -> Dict[str, Any]:
        """Dispatch an auth method call."""
        try:
            call = parse_auth_request(await request.json())
        except (ValueError, ValidationError):
            response.status_code = 400
            return AuthResult.fail(AuthErrorCode.INVALID_REQUEST).to_json()

        request_auth = auth.with_session_transport(make_transport(request, response))

        try:
            result = await call.run(request_auth)
        except Exception:
            logger.exception("Auth handler error", method=call.method)
            response.status_code = 500
            return AuthResult.fail(AuthErrorCode.INTERNAL_ERROR).to_json()

        if not result.success:
            response.status_code = call.failure_status
        return result.to_json()

    return router


def create_auth_app(
    auth: Auth,
    prefix: str = "/auth",
    transport_factory: Optional[TransportFactory] = None,
    settings: Optional[PassgateSettings] = None,
) -> FastAPI:
    """
    FastAPI application serving the auth API, managing the Auth lifecycle.

    When settings are given, structured logging is configured from them.
    """
    if settings is not None:
        setup_logging(settings.log_level.value, settings.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await auth.initialize()
        yield
        await auth.shutdown()

    app = FastAPI(
        title="passgate",
        description="OTP and passkey authentication",
        lifespan=lifespan,
    )
    app.include_router(create_auth_router(auth, prefix=prefix, transport_factory=transport_factory))
    return app
