"""Credit note endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from carebill.backend.src.db import get_session_dependency
from carebill.backend.src.models import CreditNote, CreditNoteStatus
from carebill.backend.src.schemas.credit_note import CreditNoteCreate, CreditNoteRead
from carebill.backend.src.services import credit_notes as credit_note_service

router = APIRouter(prefix="/credit-notes", tags=["credit notes"])

logger = logging.getLogger(__name__)

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.post("", response_model=CreditNoteRead, status_code=status.HTTP_201_CREATED)
def create_credit_note(payload: CreditNoteCreate, session: SessionDep) -> CreditNote:
    credit_note = credit_note_service.create_credit_note(
        session,
        payload.invoice_id,
        payload.amount,
        payload.reason,
        today=payload.credit_date,
    )
    logger.info(
        "Credit note %s raised against invoice %s",
        credit_note.credit_note_number,
        payload.invoice_id,
    )
    return credit_note


@router.get("", response_model=list[CreditNoteRead])
def list_credit_notes(
    session: SessionDep,
    funder_id: int | None = None,
    status: CreditNoteStatus | None = None,
) -> list[CreditNote]:
    return credit_note_service.list_credit_notes(session, funder_id=funder_id, status=status)


@router.get("/{credit_note_id}", response_model=CreditNoteRead)
def get_credit_note(credit_note_id: int, session: SessionDep) -> CreditNote:
    return credit_note_service.get_credit_note(session, credit_note_id)


@router.post("/{credit_note_id}/send", response_model=CreditNoteRead)
def send_credit_note(credit_note_id: int, session: SessionDep) -> CreditNote:
    return credit_note_service.send_credit_note(session, credit_note_id)


@router.post("/{credit_note_id}/void", response_model=CreditNoteRead)
def void_credit_note(credit_note_id: int, session: SessionDep) -> CreditNote:
    return credit_note_service.void_credit_note(session, credit_note_id)
