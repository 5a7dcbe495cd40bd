"""Lookup dispatch for polymorphic (entity_type, entity_id) references.

The three subject tables are disjoint, so integrity of an approval, comment or
notification reference is checked here by type tag instead of a foreign key.
"""
from typing import Optional, Union

from sqlalchemy.orm import Session

from ecm.errors import NotFound, ValidationError
from ecm.models.common import EntityType
from ecm.models.ecr import Ecr
from ecm.models.eco import Eco
from ecm.models.ecn import Ecn

Subject = Union[Ecr, Eco, Ecn]

_MODELS = {
    EntityType.ECR: (Ecr, Ecr.ecr_id),
    EntityType.ECO: (Eco, Eco.eco_id),
    EntityType.ECN: (Ecn, Ecn.ecn_id),
}


def coerce_entity_type(entity_type: Union[EntityType, str]) -> EntityType:
    try:
        return EntityType(entity_type)
    except ValueError:
        raise ValidationError(
            f"Unknown entity type: {entity_type}",
            errors=[{"loc": ["entity_type"], "msg": "must be one of ECR, ECO, ECN"}],
        )


def get_subject(db: Session, org_id: str, entity_type: Union[EntityType, str], entity_id: str) -> Subject:
    """Fetch the referenced entity; other organizations' records are reported as missing."""
    entity_type = coerce_entity_type(entity_type)
    model, pk = _MODELS[entity_type]
    subject = db.query(model).filter(pk == entity_id, model.org_id == org_id).first()
    if subject is None:
        raise NotFound(entity_type.value, entity_id)
    return subject


def entity_type_of(subject: Subject) -> EntityType:
    if isinstance(subject, Ecr):
        return EntityType.ECR
    if isinstance(subject, Eco):
        return EntityType.ECO
    return EntityType.ECN


def entity_id_of(subject: Subject) -> str:
    if isinstance(subject, Ecr):
        return subject.ecr_id
    if isinstance(subject, Eco):
        return subject.eco_id
    return subject.ecn_id


def number_of(subject: Subject) -> str:
    if isinstance(subject, Ecr):
        return subject.ecr_number
    if isinstance(subject, Eco):
        return subject.eco_number
    return subject.ecn_number


def owner_of(db: Session, subject: Subject) -> Optional[str]:
    """Who hears about decisions on the subject: ECR requestor, ECO lead, or the ECN's ECO lead."""
    if isinstance(subject, Ecr):
        return subject.requestor_id
    if isinstance(subject, Eco):
        return subject.lead_engineer_id
    eco = db.query(Eco).filter(Eco.eco_id == subject.eco_id).first()
    return eco.lead_engineer_id if eco else None
