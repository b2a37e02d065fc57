from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from . import models


def _owned(db: Session, doc_id: str, owner_id: str):
    if not owner_id:
        raise ValueError("owner_id is required for every document query")
    return db.query(models.Document).filter(
        models.Document.id == doc_id,
        models.Document.owner_id == owner_id,
    )


def create_document(db: Session, owner_id: str, **fields) -> models.Document:
    if not owner_id:
        raise ValueError("owner_id is required for every document query")
    db_doc = models.Document(owner_id=owner_id, **fields)
    db.add(db_doc)
    db.commit()
    db.refresh(db_doc)
    return db_doc


def get_document(db: Session, doc_id: str, owner_id: str) -> Optional[models.Document]:
    return _owned(db, doc_id, owner_id).first()


def get_documents(db: Session, owner_id: str) -> List[models.Document]:
    if not owner_id:
        raise ValueError("owner_id is required for every document query")
    return (
        db.query(models.Document)
        .filter(models.Document.owner_id == owner_id)
        .order_by(models.Document.uploaded_at.desc())
        .all()
    )


def update_document(db: Session, doc_id: str, owner_id: str, patch: Dict[str, Any]) -> Optional[models.Document]:
    db_doc = _owned(db, doc_id, owner_id).first()
    if db_doc is None:
        return None
    for field, value in patch.items():
        setattr(db_doc, field, value)
    db.commit()
    db.refresh(db_doc)
    return db_doc


def delete_document(db: Session, doc_id: str, owner_id: str) -> Optional[models.Document]:
    db_doc = _owned(db, doc_id, owner_id).first()
    if db_doc is None:
        return None
    db.delete(db_doc)
    db.commit()
    return db_doc
