from typing import NamedTuple

from spincricket.exceptions import ValidationError

WICKET = 'W'
WIDE = 'WD'
NO_BALL = 'NB'
RUN_CHOICES = {str(n): n for n in range(7)}


class Outcome(NamedTuple):
    kind: str  # 'wicket', 'extra' or 'runs'
    runs: int

    @property
    def counts_toward_quota(self) -> bool:
        return self.kind != 'extra'


def classify_choice(choice: str) -> Outcome:
    """Map a batsman's shot choice to what it does to the score.

    Wides and no-balls both award one run and are re-bowled.
    """
    if choice == WICKET:
        return Outcome('wicket', 0)
    if choice in (WIDE, NO_BALL):
        return Outcome('extra', 1)
    if choice in RUN_CHOICES:
        return Outcome('runs', RUN_CHOICES[choice])
    raise ValidationError(f"invalid choice: {choice!r}")

