"""
Spin payload models.

Server payloads are camelCase JSON. They are validated once, at the
boundary, into the ``ResultStep | CascadeStep`` union; malformed input
raises ``PayloadError`` instead of being silently defaulted.
"""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel


class PayloadError(ValueError):
    """A spin payload failed validation.

    Attributes:
        errors: pydantic error list, one entry per problem
    """

    def __init__(self, message: str, errors: Optional[list] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class WireModel(BaseModel):
    """Immutable model reading camelCase keys and accepting field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Position(WireModel):
    row: int = Field(ge=0)
    col: int = Field(ge=0)

    @property
    def key(self) -> tuple[int, int]:
        return (self.row, self.col)


class MoneyValue(WireModel):
    amount: float = 0.0
    currency: str = ""


class GridSnapshot(WireModel):
    matrix_string: str


class StepWin(WireModel):
    """One evaluated win inside a step."""

    win_type: Literal["LINE", "WAYS", "CLUSTER"]
    symbol: str
    positions: List[Position] = Field(default_factory=list)
    amount: float = 0.0
    multiplier: Optional[float] = None
    line_id: Optional[int] = None
    match_count: Optional[int] = None


class Movement(WireModel):
    from_: Position = Field(alias="from")
    to: Position
    symbol: str = ""


class Refill(WireModel):
    position: Position
    symbol: str


class ResultStep(WireModel):
    """First step of a spin: the landed grid and its wins."""

    index: int = 0
    type: Literal["RESULT"] = "RESULT"
    grid: GridSnapshot
    wins: List[StepWin] = Field(default_factory=list)
    total_win: MoneyValue = Field(default_factory=MoneyValue)


class CascadeStep(WireModel):
    """Removal, collapse, refill and re-evaluation after a winning step."""

    index: int = 0
    type: Literal["CASCADE"] = "CASCADE"
    grid_before: GridSnapshot
    removed_positions: List[Position] = Field(default_factory=list)
    movements: Optional[List[Movement]] = None
    refills: List[Refill] = Field(default_factory=list)
    grid_after: GridSnapshot
    wins: List[StepWin] = Field(default_factory=list)
    step_win: MoneyValue = Field(default_factory=MoneyValue)
    cumulative_win: MoneyValue = Field(default_factory=MoneyValue)
    multiplier: Optional[float] = None


SpinStep = Annotated[Union[ResultStep, CascadeStep], Field(discriminator="type")]


class RoundData(WireModel):
    round_id: str
    round_seq: int = 0
    mode: Literal["BASE", "FS", "HNS"] = "BASE"
    matrix_string: str = ""


class SpinResult(WireModel):
    """The presentation-relevant part of a spin response."""

    round: RoundData
    stake: MoneyValue
    win: MoneyValue = Field(default_factory=MoneyValue)
    steps: List[SpinStep] = Field(min_length=1)

    @property
    def spin_id(self) -> str:
        return self.round.round_id

    @property
    def final_matrix_string(self) -> str:
        """Grid after the last step, falling back to the landed round grid."""
        last = self.steps[-1]
        if isinstance(last, CascadeStep):
            return last.grid_after.matrix_string
        return last.grid.matrix_string or self.round.matrix_string


_steps_adapter = TypeAdapter(List[SpinStep])


def _summarize(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{exc.error_count()} validation error(s); first at '{location}': {first.get('msg')}"


def parse_spin_steps(raw: Any) -> List[Union[ResultStep, CascadeStep]]:
    """Validate a raw list of step dicts.

    Raises:
        PayloadError: If any step is malformed or has an unknown ``type``
    """
    try:
        return _steps_adapter.validate_python(raw)
    except ValidationError as e:
        raise PayloadError(f"Invalid spin steps: {_summarize(e)}", e.errors()) from e


def parse_spin_result(raw: Any) -> SpinResult:
    """Validate a raw spin response ``data`` object.

    Raises:
        PayloadError: If the payload is malformed
    """
    try:
        return SpinResult.model_validate(raw)
    except ValidationError as e:
        raise PayloadError(f"Invalid spin result: {_summarize(e)}", e.errors()) from e
