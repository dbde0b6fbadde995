"""Player-submitted rebuy, add-on and knockout requests."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pokerclub.logging_config import get_logger
from pokerclub.models.pending_action import PendingAction, PendingActionType
from pokerclub.models.registration import Registration
from pokerclub.services.registration import RegistrationService
from pokerclub.services.tournament import get_tournament_or_raise
from pokerclub.tournament.lifecycle import OP_ADDON, OP_REBUY, ensure_unlocked
from pokerclub.utils.errors import (
    ErrorCode,
    PendingActionNotFoundError,
    RegistrationNotFoundError,
    ValidationFailedError,
)

logger = get_logger(__name__)


class PendingActionService:
    """Queue of player requests that staff confirm or dismiss.

    Confirming applies the request through the registration service (atomic
    increments, lock re-check) and deletes it in the same transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.registrations = RegistrationService(db)

    async def _registration_for(self, tournament_id: str, player_id: str) -> Registration:
        registration = await self.registrations.find_registration(tournament_id, player_id)
        if registration is None:
            raise RegistrationNotFoundError(f"{tournament_id}/{player_id}")
        return registration

    async def submit(
        self,
        tournament_id: str,
        player_id: str,
        action_type: PendingActionType,
        target_player_id: str | None = None,
    ) -> PendingAction:
        """Queue a request.

        Rebuy and add-on requests are refused up front once the prize pool
        is locked; confirmation re-checks the lock anyway.

        Raises:
            RegistrationNotFoundError: Player (or knockout target) not registered
            PrizePoolLockedError: Rebuy/add-on request on a locked pool
            ValidationFailedError: Knockout without a valid target
        """
        tournament = await get_tournament_or_raise(self.db, tournament_id)
        await self._registration_for(tournament_id, player_id)

        if action_type == PendingActionType.REBUY:
            ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_REBUY)
        elif action_type == PendingActionType.ADDON:
            ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_ADDON)
        elif action_type == PendingActionType.KNOCKOUT:
            if not target_player_id or target_player_id == player_id:
                raise ValidationFailedError(
                    "Knockout requests need another player as target",
                    code=ErrorCode.INVALID_REQUEST,
                    details={"targetPlayerId": target_player_id},
                )
            await self._registration_for(tournament_id, target_player_id)

        action = PendingAction(
            tournament_id=tournament_id,
            player_id=player_id,
            action_type=action_type.value,
            target_player_id=target_player_id
            if action_type == PendingActionType.KNOCKOUT
            else None,
        )
        self.db.add(action)
        await self.db.flush()

        logger.info(
            "pending_action_submitted",
            action_id=action.id,
            tournament_id=tournament_id,
            action_type=action.action_type,
        )
        return action

    async def list_for_tournament(self, tournament_id: str) -> list[PendingAction]:
        await get_tournament_or_raise(self.db, tournament_id)
        result = await self.db.execute(
            select(PendingAction)
            .where(PendingAction.tournament_id == tournament_id)
            .order_by(PendingAction.created_at)
        )
        return list(result.scalars().all())

    async def get_action(self, action_id: str) -> PendingAction:
        action = await self.db.get(PendingAction, action_id)
        if action is None:
            raise PendingActionNotFoundError(action_id)
        return action

    async def confirm(self, action_id: str) -> Registration:
        """Apply the request and remove it.

        rebuy/addon: +1 on the requesting player's registration.
        knockout: the target is eliminated, credited to the requester.

        Returns:
            The registration that changed
        """
        action = await self.get_action(action_id)
        registration = await self._registration_for(action.tournament_id, action.player_id)

        action_type = PendingActionType(action.action_type)
        if action_type == PendingActionType.REBUY:
            changed = await self.registrations.add_rebuys(registration.id, 1)
        elif action_type == PendingActionType.ADDON:
            changed = await self.registrations.add_addons(registration.id, 1)
        else:
            target = await self._registration_for(action.tournament_id, action.target_player_id)
            changed = await self.registrations.eliminate(
                target.id, eliminated_by=action.player_id
            )

        await self.db.delete(action)
        await self.db.flush()

        logger.info(
            "pending_action_confirmed",
            action_id=action_id,
            action_type=action_type.value,
            registration_id=changed.id,
        )
        return changed

    async def dismiss(self, action_id: str) -> None:
        action = await self.get_action(action_id)
        await self.db.delete(action)
        await self.db.flush()
        logger.info("pending_action_dismissed", action_id=action_id)
