from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, CurrentUser
from app.schemas.auth import LoginRequest, LoginResponse, UserResponse
from app.services.auth_service import AuthService

router = APIRouter(tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: DB,
):
    """
    Authenticate a user and return a bearer token.

    The same endpoint serves admin, office and medicine logins; the user's
    role decides where the client routes after login.
    """
    auth_service = AuthService(db)

    user = await auth_service.authenticate_user(data.email, data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token, expires_in = auth_service.create_token(user)
    await db.commit()
    await db.refresh(user)

    return LoginResponse(
        token=token,
        expires_in=expires_in,
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser):
    """Get the logged in user."""
    return UserResponse.model_validate(current_user)
