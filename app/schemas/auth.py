from pydantic import BaseModel, EmailStr


class WhoAmIResponse(BaseModel):
    id: int
    user: EmailStr
    full_name: str
    role: str
