"""Ledger accountant: usage entries and token balance adjustments."""

from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
import structlog

from ..database import SessionFactory
from ..errors import AccountingFailure
from ..models import LedgerEntry, User
from ..pipeline.stages import ModelTier

logger = structlog.get_logger(__name__)

TOKENS_PER_RATE_UNIT = 1_000_000


@dataclass(frozen=True)
class RateTable:
    """USD per million tokens for each model tier."""

    reasoning_model: str
    reasoning_rate: float
    standard_rate: float

    def tier_for(self, model_id: str) -> ModelTier:
        if model_id == self.reasoning_model:
            return ModelTier.REASONING
        return ModelTier.STANDARD

    def rate_for(self, model_id: str) -> float:
        if self.tier_for(model_id) is ModelTier.REASONING:
            return self.reasoning_rate
        return self.standard_rate

    def cost(self, model_id: str, total_tokens: int) -> float:
        return total_tokens / TOKENS_PER_RATE_UNIT * self.rate_for(model_id)


class LedgerAccountant:
    """Records one ledger entry per billed generation call.

    The entry insert and the balance adjustment share one transaction, and the
    balance is changed with column arithmetic in the UPDATE itself so
    concurrent calls for the same user cannot lose updates.
    """

    def __init__(self, session_factory: SessionFactory, rates: RateTable):
        self.session_factory = session_factory
        self.rates = rates

    async def record(
        self,
        caller_id: str,
        project_id: str,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
    ) -> LedgerEntry:
        """Append a ledger entry and charge the caller.

        Raises:
            AccountingFailure: On invalid counts, unknown user, or store errors.
                Nothing is written in that case.
        """
        if input_tokens < 0 or output_tokens < 0:
            raise AccountingFailure("Token counts must be non-negative")

        total_tokens = input_tokens + output_tokens
        entry = LedgerEntry(
            user_id=caller_id,
            project_id=project_id,
            model_id=model_id,
            model_tier=self.rates.tier_for(model_id).value,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            provider_cost_usd=self.rates.cost(model_id, total_tokens),
            charged_tokens=total_tokens,
        )

        try:
            async with self.session_factory() as session, session.begin():
                session.add(entry)
                result = await session.execute(
                    update(User)
                    .where(User.id == caller_id)
                    .values(
                        tokens_remaining=User.tokens_remaining - total_tokens,
                        tokens_used=User.tokens_used + total_tokens,
                    )
                )
                if result.rowcount != 1:
                    raise AccountingFailure(f"User {caller_id} not found")
        except SQLAlchemyError as e:
            raise AccountingFailure(f"Ledger write failed: {e}") from e

        logger.info(
            "ledger_entry_recorded",
            user_id=caller_id,
            project_id=project_id,
            model_id=model_id,
            total_tokens=total_tokens,
            provider_cost_usd=entry.provider_cost_usd,
        )
        return entry
