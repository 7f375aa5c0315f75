"""
Vote tally - counts, weighted sums and the formatted result line.

Pure functions over already loaded votes; nothing here touches the session.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from condo_assembly.models.agenda_item import QuorumType
from condo_assembly.models.vote import Vote, VoteChoice

APPROVED = "Aprovado"
REJECTED = "Reprovado"


@dataclass
class VoteTally:
    yes: int = 0
    no: int = 0
    abstention: int = 0
    total: int = 0
    weighted_yes: Decimal = Decimal("0")
    weighted_no: Decimal = Decimal("0")
    weighted_abstention: Decimal = Decimal("0")
    weighted_total: Decimal = Decimal("0")

    def _percentage(self, weighted: Decimal) -> float:
        if self.weighted_total == 0:
            return 0.0
        return round(float(weighted / self.weighted_total * 100), 2)

    @property
    def yes_percentage(self) -> float:
        return self._percentage(self.weighted_yes)

    @property
    def no_percentage(self) -> float:
        return self._percentage(self.weighted_no)

    @property
    def abstention_percentage(self) -> float:
        return self._percentage(self.weighted_abstention)

    @property
    def approved(self) -> bool:
        """Default verdict: more YES ballots than NO ballots"""
        return self.yes > self.no

    @property
    def verdict(self) -> str:
        return APPROVED if self.approved else REJECTED


def tally_votes(votes: Iterable[Vote]) -> VoteTally:
    tally = VoteTally()
    for vote in votes:
        weight = Decimal(str(vote.voting_weight))
        tally.total += 1
        tally.weighted_total += weight
        if vote.choice == VoteChoice.YES:
            tally.yes += 1
            tally.weighted_yes += weight
        elif vote.choice == VoteChoice.NO:
            tally.no += 1
            tally.weighted_no += weight
        else:
            tally.abstention += 1
            tally.weighted_abstention += weight
    return tally


def quorum_threshold_met(tally: VoteTally, quorum_type: QuorumType) -> bool:
    """
    Weighted approval under the item's quorum rule. Abstentions count in the
    denominator. Advisory only: the stored verdict stays count based.
    """
    if tally.total == 0 or tally.weighted_total == 0:
        return False
    if quorum_type == QuorumType.QUALIFIED:
        return tally.weighted_yes * 3 >= tally.weighted_total * 2
    if quorum_type == QuorumType.UNANIMOUS:
        return tally.weighted_yes == tally.weighted_total
    return tally.weighted_yes * 2 > tally.weighted_total


def format_vote_result(tally: VoteTally) -> str:
    """
    Result line stored on the agenda item when voting closes, e.g.
    "Aprovado - Sim: 2 (75.0%) | Nao: 1 (25.0%) | Abstencoes: 0 | Total: 3 votos"
    """
    return (
        f"{tally.verdict} - "
        f"Sim: {tally.yes} ({tally.yes_percentage:.1f}%) | "
        f"Nao: {tally.no} ({tally.no_percentage:.1f}%) | "
        f"Abstencoes: {tally.abstention} | "
        f"Total: {tally.total} votos"
    )
