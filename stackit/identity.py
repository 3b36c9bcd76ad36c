from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """
    What the board needs from the identity provider: whether the caller may
    mutate, and an opaque credential forwarded on outbound requests.
    """
    model_config = ConfigDict(frozen=True)

    credential: Optional[str] = None

    @property
    def is_authorized(self) -> bool:
        return bool(self.credential)

    def auth_headers(self) -> Dict[str, str]:
        if not self.credential:
            return {}
        return {"Authorization": f"Bearer {self.credential}"}

    @classmethod
    def from_header(cls, authorization: Optional[str]) -> "Identity":
        """
        Build from an Authorization header; anything that isn't a non-empty
        bearer token is anonymous.
        """
        if not authorization:
            return ANONYMOUS
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return ANONYMOUS
        return cls(credential=token.strip())


ANONYMOUS = Identity()
