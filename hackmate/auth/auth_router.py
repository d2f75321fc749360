# hackmate/auth/auth_router.py

import re

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field, field_validator

from hackmate.auth.auth_context import AuthContext
from hackmate.auth.identity_provider import IdentityProvider
from hackmate.deps import get_identity, get_store, oauth2_scheme
from hackmate.errors import AuthError, EmailAlreadyRegisteredError, InvalidCredentialsError
from hackmate.schemas.member_schema import ProfileUpdate, SkillsUpdate
from hackmate.store.document_store import DocumentStore

router = APIRouter(tags=["auth"])


# ================= SCHEMAS =================
class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str
    name: str = Field(..., min_length=1)

    @field_validator("password")
    def validate_password(cls, value):
        if len(value) < 8:
            raise ValueError("Password must be at least 8 chars")
        if not re.search(r"[A-Z]", value):
            raise ValueError("Must contain uppercase")
        if not re.search(r"\d", value):
            raise ValueError("Must contain number")
        if not re.search(r"[^A-Za-z0-9]", value):
            raise ValueError("Must contain symbol")
        return value

    @field_validator("confirm_password")
    def passwords_match(cls, v, info):
        if v != info.data.get("password"):
            raise ValueError("Passwords do not match.")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class GoogleLoginRequest(BaseModel):
    id_token: str


def _session(ctx: AuthContext) -> dict:
    return {
        "access_token": ctx.token,
        "token_type": "bearer",
        "user_id": ctx.user.uid,
        "profile": ctx.user_profile.model_dump(mode="json") if ctx.user_profile else None,
    }


# ================= ROUTES =================
@router.post("/register", status_code=201)
async def register_user(
    request: RegisterRequest,
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    ctx = AuthContext(identity, store)
    try:
        await ctx.sign_up_with_email(request.email, request.password, request.name)
    except EmailAlreadyRegisteredError:
        raise HTTPException(400, "Email already registered")
    return _session(ctx)


@router.post("/login")
async def login(
    request: LoginRequest,
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    ctx = AuthContext(identity, store)
    try:
        await ctx.sign_in_with_email(request.email, request.password)
    except InvalidCredentialsError:
        raise HTTPException(401, "Invalid credentials")
    return _session(ctx)


@router.post("/guest")
async def login_as_guest(
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    ctx = AuthContext(identity, store)
    await ctx.sign_in_as_guest()
    return _session(ctx)


@router.post("/google")
async def login_with_google(
    request: GoogleLoginRequest,
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    ctx = AuthContext(identity, store)
    try:
        await ctx.sign_in_with_google(request.id_token)
    except InvalidCredentialsError as exc:
        raise HTTPException(401, str(exc))
    except AuthError as exc:
        raise HTTPException(503, str(exc))
    return _session(ctx)


@router.get("/me")
async def get_me(
    token: str = Depends(oauth2_scheme),
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    ctx = AuthContext(identity, store)
    await ctx.start(token)
    if ctx.user is None:
        raise HTTPException(401, "Invalid or expired token")
    return {
        "id": ctx.user.uid,
        "email": ctx.user.email,
        "is_anonymous": ctx.user.is_anonymous,
        "profile": ctx.user_profile.model_dump(mode="json"),
    }


@router.post("/logout")
async def logout(
    token: str = Depends(oauth2_scheme),
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    ctx = AuthContext(identity, store)
    await ctx.start(token)
    await ctx.logout()
    return {"message": "Signed out"}


@router.patch("/profile")
async def update_profile(
    updates: ProfileUpdate,
    token: str = Depends(oauth2_scheme),
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    ctx = AuthContext(identity, store)
    await ctx.start(token)
    if ctx.user is None:
        raise HTTPException(401, "Invalid or expired token")
    await ctx.update_user_profile(updates.model_dump(exclude_unset=True))
    return ctx.user_profile.model_dump(mode="json")


@router.put("/skills")
async def update_skills(
    request: SkillsUpdate,
    token: str = Depends(oauth2_scheme),
    identity: IdentityProvider = Depends(get_identity),
    store: DocumentStore = Depends(get_store),
):
    ctx = AuthContext(identity, store)
    await ctx.start(token)
    if ctx.user is None:
        raise HTTPException(401, "Invalid or expired token")
    await ctx.update_user_skills(request.skills)
    return ctx.user_profile.model_dump(mode="json")
