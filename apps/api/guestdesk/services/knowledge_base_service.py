"""Knowledge base service - client/property reference entries."""

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from guestdesk.core.errors import NotFoundError, ValidationError
from guestdesk.db.enums import AuditAction
from guestdesk.db.models import Client, KbEntry, Property
from guestdesk.schemas.knowledge_base import KbEntryCreate, KbEntryUpdate
from guestdesk.services import audit_service
from guestdesk.utils.pagination import like_pattern


def _normalize_tags(tags: list[str] | None) -> list[str]:
    seen: list[str] = []
    for tag in tags or []:
        value = tag.strip().lower()
        if value and value not in seen:
            seen.append(value)
    return seen


def list_entries(
    db: Session,
    client_id: UUID | None = None,
    property_id: UUID | None = None,
    tag: str | None = None,
    search: str | None = None,
) -> list[KbEntry]:
    """List entries newest first; property filter includes client-wide entries."""
    query = db.query(KbEntry)
    if client_id:
        query = query.filter(KbEntry.client_id == client_id)
    if property_id:
        query = query.filter(
            or_(KbEntry.property_id == property_id, KbEntry.property_id.is_(None))
        )
    if search:
        pattern = like_pattern(search)
        query = query.filter(
            or_(
                KbEntry.title.ilike(pattern, escape="\\"),
                KbEntry.content.ilike(pattern, escape="\\"),
            )
        )
    entries = query.order_by(KbEntry.created_at.desc(), KbEntry.id.desc()).all()
    if tag:
        # Tags are a JSON list; filtered in Python for portability across backends
        wanted = tag.strip().lower()
        entries = [e for e in entries if wanted in (e.tags or [])]
    return entries


def tag_counts(db: Session, client_id: UUID | None = None) -> list[dict]:
    """Every tag in use with the number of entries carrying it, most used first."""
    query = db.query(KbEntry.tags)
    if client_id:
        query = query.filter(KbEntry.client_id == client_id)

    counts: dict[str, int] = {}
    for (tags,) in query.all():
        for tag in tags or []:
            counts[tag] = counts.get(tag, 0) + 1
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [{"name": name, "count": count} for name, count in ordered]


def get_entry(db: Session, entry_id: UUID) -> KbEntry:
    entry = db.get(KbEntry, entry_id)
    if entry is None:
        raise NotFoundError("Knowledge base entry not found")
    return entry


def create_entry(db: Session, data: KbEntryCreate, actor_id: UUID | None = None) -> KbEntry:
    if db.get(Client, data.client_id) is None:
        raise NotFoundError("Client not found")
    if data.property_id:
        prop = db.get(Property, data.property_id)
        if prop is None or prop.client_id != data.client_id:
            raise ValidationError("Property does not belong to this client")

    entry = KbEntry(
        client_id=data.client_id,
        property_id=data.property_id,
        title=data.title.strip(),
        content=data.content,
        tags=_normalize_tags(data.tags),
    )
    db.add(entry)
    db.flush()
    audit_service.log_event(
        db,
        action=AuditAction.KB_ENTRY_CREATED,
        entity_type="kb_entry",
        entity_id=entry.id,
        actor_user_id=actor_id,
        meta={"client_id": str(data.client_id)},
    )
    db.commit()
    db.refresh(entry)
    return entry


def update_entry(
    db: Session, entry_id: UUID, data: KbEntryUpdate, actor_id: UUID | None = None
) -> KbEntry:
    entry = get_entry(db, entry_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "title" in changes:
        entry.title = changes["title"].strip()
    if "content" in changes:
        entry.content = changes["content"]
    if "tags" in changes:
        entry.tags = _normalize_tags(changes["tags"])

    audit_service.log_event(
        db,
        action=AuditAction.KB_ENTRY_UPDATED,
        entity_type="kb_entry",
        entity_id=entry.id,
        actor_user_id=actor_id,
        meta={"fields": sorted(changes.keys())},
    )
    db.commit()
    db.refresh(entry)
    return entry


def delete_entry(db: Session, entry_id: UUID, actor_id: UUID | None = None) -> None:
    entry = get_entry(db, entry_id)
    audit_service.log_event(
        db,
        action=AuditAction.KB_ENTRY_DELETED,
        entity_type="kb_entry",
        entity_id=entry.id,
        actor_user_id=actor_id,
    )
    db.delete(entry)
    db.commit()


def entries_for_context(
    db: Session, client_id: UUID, property_id: UUID | None, limit: int = 10
) -> list[KbEntry]:
    """Entries passed to classification: property-specific first, then client-wide."""
    query = db.query(KbEntry).filter(KbEntry.client_id == client_id)
    if property_id:
        query = query.filter(
            or_(KbEntry.property_id == property_id, KbEntry.property_id.is_(None))
        )
    else:
        query = query.filter(KbEntry.property_id.is_(None))
    return (
        query.order_by(KbEntry.property_id.is_(None), KbEntry.updated_at.desc())
        .limit(limit)
        .all()
    )
