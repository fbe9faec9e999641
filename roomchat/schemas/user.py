from pydantic import BaseModel, Field

class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=72)

class UserLogin(BaseModel):
    username: str
    password: str

class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    username: str

class IdentityResponse(BaseModel):
    user_id: int
    username: str
