from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from roomchat.database import get_db
from roomchat.repositories.user_repository import UserRepository
from roomchat.schemas.user import UserCreate, UserLogin, AuthResponse, IdentityResponse
from roomchat.auth import Identity, get_current_identity, token_service
from roomchat.exceptions import DuplicateUsername, StoreError, UserNotFound, WrongPassword

router = APIRouter()

def _auth_response(user) -> dict:
    token = token_service.issue(user.id, user.username)
    return {
        "token": token,
        "token_type": "bearer",
        "expires_in": token_service.expires_in,
        "username": user.username,
    }

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    user_repo = UserRepository(db)
    
    try:
        user = await user_repo.register(user_data.username, user_data.password)
    except DuplicateUsername as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=exc.message)
    
    return _auth_response(user)

@router.post("/login", response_model=AuthResponse)
async def login_user(user_data: UserLogin, db: AsyncSession = Depends(get_db)):
    user_repo = UserRepository(db)

    try:
        user = await user_repo.verify_credentials(user_data.username, user_data.password)
    except UserNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except WrongPassword as exc:
        raise HTTPException(status_code=401, detail=exc.message)
    except StoreError as exc:
        raise HTTPException(status_code=503, detail=exc.message)
    
    return _auth_response(user)

@router.get("/me", response_model=IdentityResponse)
async def get_current_user_info(identity: Identity = Depends(get_current_identity)):
    return {"user_id": identity.user_id, "username": identity.username}
