"""Request identity.

Authentication happens upstream; the proxy in front of the API forwards the
verified user id and the organization it is acting in as headers. Routes use
`Depends(get_identity)` to receive both.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ecm.database import get_db
from ecm.models.organization import Organization


@dataclass(frozen=True)
class Identity:
    user_id: str
    org_id: str


def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return x_user_id


def get_identity(
    user_id: str = Depends(get_current_user_id),
    x_org_id: Optional[str] = Header(None, alias="X-Org-Id"),
    db: Session = Depends(get_db),
) -> Identity:
    if not x_org_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Organization not specified")
    org = db.query(Organization).filter(Organization.org_id == x_org_id).first()
    if not org:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unknown organization")
    return Identity(user_id=user_id, org_id=org.org_id)
