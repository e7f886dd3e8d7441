"""
Chatbot system prompt slots (mounted at /api/admin/chatbot/system-prompts).

GET    ""         - registry default and active override for every slot
PUT    /{slot}    - store a new template and make it the slot's only active one
DELETE /{slot}    - deactivate the override so the slot falls back to its default

The chatbot reads the ``custom`` slot on every request.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db
from portfolio.models.database_models import PromptSlot, SystemPromptTemplate
from portfolio.models.schemas import (
    PromptSlotSchema,
    SystemPromptSlotResponse,
    SystemPromptUpdateRequest,
)
from portfolio.services import prompts
from portfolio.services.chatbot_service import active_template, activate_template, deactivate_templates

logger = logging.getLogger(__name__)

router = APIRouter()


def _slot_response(slot: PromptSlot, override: Optional[SystemPromptTemplate]) -> SystemPromptSlotResponse:
    default = prompts.get_prompt(prompts.SLOT_DEFAULTS[slot.value])
    return SystemPromptSlotResponse(
        slot=PromptSlotSchema(slot.value),
        default_template=default.template,
        active_template=override.template if override else None,
        active_name=override.name if override else None,
        is_overridden=override is not None,
        updated_at=override.updated_at if override else None,
    )


@router.get("", response_model=List[SystemPromptSlotResponse])
async def list_slots(db: AsyncSession = Depends(get_db)):
    return [_slot_response(slot, await active_template(db, slot)) for slot in PromptSlot]


@router.put("/{slot}", response_model=SystemPromptSlotResponse)
async def set_slot_template(
    slot: PromptSlotSchema,
    body: SystemPromptUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Deactivate the slot's current template and activate the new one."""
    db_slot = PromptSlot(slot.value)
    template = await activate_template(db, db_slot, body.template, body.name or f"{slot.value} override")
    return _slot_response(db_slot, template)


@router.delete("/{slot}", status_code=status.HTTP_204_NO_CONTENT)
async def reset_slot(slot: PromptSlotSchema, db: AsyncSession = Depends(get_db)):
    """Revert the slot to its registry default. Previous templates are kept inactive."""
    await deactivate_templates(db, PromptSlot(slot.value))
    await db.flush()
    logger.info("Reverted system prompt slot=%s to default", slot.value)
