"""Organization API routes."""
import logging
import pytz
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ecm.auth import Identity, get_current_user_id, get_identity
from ecm.database import get_db
from ecm.errors import ValidationError
from ecm.models.organization import Organization
from ecm.schemas.organization import OrganizationCreate, OrganizationOut, OrganizationSettingsUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_timezone(tz_name):
    if tz_name is not None and tz_name not in pytz.all_timezones_set:
        raise ValidationError(
            f"Unknown timezone: {tz_name}",
            errors=[{"loc": ["settings", "timezone"], "msg": "must be an IANA timezone name", "input": tz_name}],
        )


@router.post("/", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED)
def create_organization(
    payload: OrganizationCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create an organization (tenant)."""
    _check_timezone(payload.settings.get("timezone"))
    existing = db.query(Organization).filter(Organization.subdomain == payload.subdomain).first()
    if existing:
        raise HTTPException(status_code=409, detail="Subdomain is already taken")

    org = Organization(name=payload.name, subdomain=payload.subdomain, settings=payload.settings)
    db.add(org)
    db.commit()
    db.refresh(org)
    logger.info("Created organization '%s' (%s) by user %s", org.name, org.org_id, user_id)
    return org


@router.get("/current", response_model=OrganizationOut)
def get_current_organization(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    """Fetch the organization the caller is acting in."""
    return db.query(Organization).filter(Organization.org_id == identity.org_id).first()


@router.patch("/current/settings", response_model=OrganizationOut)
def update_settings(
    payload: OrganizationSettingsUpdate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Update workflow settings (change review board members, dashboard timezone)."""
    updates = payload.model_dump(exclude_unset=True)
    _check_timezone(updates.get("timezone"))
    org = db.query(Organization).filter(Organization.org_id == identity.org_id).first()
    # Reassign so the JSON column is flagged dirty
    org.settings = {**(org.settings or {}), **updates}
    db.commit()
    db.refresh(org)
    logger.info("Updated settings %s of organization %s", sorted(updates), org.org_id)
    return org
