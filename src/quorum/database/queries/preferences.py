"""User preference query functions for Quorum."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database.models.preferences import UserPreferences

logger = structlog.get_logger(__name__)


async def get_preferences(session: AsyncSession) -> UserPreferences:
    """Return the preferences singleton, creating it with defaults if absent."""
    result = await session.execute(
        select(UserPreferences).order_by(UserPreferences.created_at).limit(1)
    )
    preferences = result.scalar_one_or_none()
    if preferences is None:
        preferences = UserPreferences(
            default_abstraction_mode=False,
            remember_abstraction_choice=False,
            onboarding_completed=False,
        )
        session.add(preferences)
        await session.flush()
    return preferences


async def remember_abstraction_mode(
    session: AsyncSession, abstraction_mode: bool
) -> UserPreferences:
    """Make abstraction_mode the default for future sessions."""
    preferences = await get_preferences(session)
    preferences.default_abstraction_mode = abstraction_mode
    preferences.remember_abstraction_choice = True
    await session.flush()
    logger.info("abstraction_mode_remembered", abstraction_mode=abstraction_mode)
    return preferences


async def complete_onboarding(session: AsyncSession) -> UserPreferences:
    preferences = await get_preferences(session)
    preferences.onboarding_completed = True
    await session.flush()
    logger.info("onboarding_completed")
    return preferences
