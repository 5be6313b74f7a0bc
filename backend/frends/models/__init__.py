from frends.models.refresh_token import RefreshToken
from frends.models.user import User

__all__ = ["RefreshToken", "User"]
