from pydantic import BaseModel, ConfigDict
from typing import Optional, Any, Dict


class PinRequest(BaseModel):
    # keypads may post the PIN as a JSON number
    model_config = ConfigDict(coerce_numbers_to_str=True)

    pin: str = ""


class PinResponse(BaseModel):
    granted: bool


class AdminLoginRequest(BaseModel):
    # identity fields are taken from the session; body values only fill gaps
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_info: Optional[Dict[str, Any]] = None


class AdminLoginResponse(BaseModel):
    success: bool
    message: str


class ActorResponse(BaseModel):
    user_id: Optional[str] = None
    email: str
    name: str
    mode: str
