"""Capacity manager — the only code that moves Skill.available_slots."""

import logging

from src.tc_common.datetime_utils import utc_now
from src.tc_common.errors import NoCapacityError, SkillNotFoundError
from src.tc_ledger.domain.models import Skill
from src.tc_ledger.domain.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


async def _require_skill(uow: UnitOfWork, skill_id: str) -> Skill:
    skill = await uow.get_skill(skill_id)
    if skill is None:
        raise SkillNotFoundError(skill_id)
    return skill


async def reserve_slot(uow: UnitOfWork, skill_id: str) -> Skill:
    """Take one slot inside the caller's unit; NoCapacity when none are left."""
    skill = await _require_skill(uow, skill_id)
    if skill.available_slots <= 0:
        raise NoCapacityError(skill_id)
    skill.available_slots -= 1
    skill.updated_at = utc_now()
    uow.put(skill)
    logger.debug("Reserved slot on %s, %d left", skill_id, skill.available_slots)
    return skill


async def release_slot(uow: UnitOfWork, skill_id: str) -> Skill:
    skill = await _require_skill(uow, skill_id)
    skill.available_slots += 1
    skill.updated_at = utc_now()
    uow.put(skill)
    logger.debug("Released slot on %s, %d left", skill_id, skill.available_slots)
    return skill
