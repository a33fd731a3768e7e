"""Data model for candidates, external matches and result rows."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from place_extractor.core.mapcode import normalise_mapcode, validate_mapcode

OVERRIDE_FIELDS: tuple[str, ...] = ("mapcode", "telephone", "address")


class Candidate(BaseModel):
    """A text-derived guess at a place name, before any external resolution."""

    model_config = ConfigDict(frozen=True)

    raw: str = Field(description="Cleaned input line the candidate came from")
    main_name: str = Field(description="Normalized place name")
    hint_city: str | None = Field(default=None, description="Location qualifier")
    position: int = Field(ge=0, description="Order of acceptance in the input")


class ExternalMatch(BaseModel):
    """One place returned by the lookup service for a candidate."""

    external_id: str
    name: str = ""
    address: str = ""


class LookupResult(BaseModel):
    """Response of the place-lookup service."""

    matches: list[ExternalMatch] = Field(default_factory=list)
    error: str | None = None


class EnrichedDetails(BaseModel):
    """Response of the place-detail service for one external id."""

    name_en: str = ""
    name_ja: str = ""
    mapcode: str = ""
    telephone: str = ""
    address: str = ""
    error: str | None = None

    @field_validator("name_en", "name_ja", "mapcode", "telephone", "address", mode="before")
    @classmethod
    def default_missing(cls, v: str | None) -> str:
        """Absent data fields default to an empty string."""
        return v or ""


class RowStatus(str, Enum):
    """Lifecycle of a result row."""

    PENDING = "pending"
    ENRICHING = "enriching"
    DISAMBIGUATION = "disambiguation"
    COMPLETE = "complete"
    ERROR = "error"


class PendingState(BaseModel):
    status: Literal["pending"] = "pending"


class EnrichingState(BaseModel):
    status: Literal["enriching"] = "enriching"


class DisambiguationState(BaseModel):
    """Paused until a human picks one of ``matches``."""

    status: Literal["disambiguation"] = "disambiguation"
    matches: list[ExternalMatch] = Field(min_length=2)


class CompleteState(BaseModel):
    status: Literal["complete"] = "complete"


class ErrorState(BaseModel):
    status: Literal["error"] = "error"
    message: str


RowState = Annotated[
    Union[PendingState, EnrichingState, DisambiguationState, CompleteState, ErrorState],
    Field(discriminator="status"),
]


class Row(BaseModel):
    """The unit of work and display for one candidate.

    ``manual_overrides`` only ever holds keys the user actually set; a key
    that is present wins over the fetched value even when its value is
    empty or None.
    """

    id: str
    candidate: Candidate
    state: RowState = Field(default_factory=PendingState)

    external_id: str | None = None
    name_en: str | None = None
    name_ja: str | None = None
    display_name: str | None = None
    mapcode: str | None = None
    telephone: str | None = None
    address: str | None = None

    manual_overrides: dict[str, str | None] = Field(default_factory=dict)
    is_mapcode_invalid: bool = False

    @field_validator("manual_overrides")
    @classmethod
    def validate_override_keys(cls, v: dict[str, str | None]) -> dict[str, str | None]:
        """Only mapcode, telephone and address can be overridden."""
        unknown = set(v) - set(OVERRIDE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot override fields: {sorted(unknown)}")
        return v

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "Row":
        """Create the initial pending row for a candidate."""
        return cls(id=str(candidate.position), candidate=candidate)

    @property
    def status(self) -> RowStatus:
        return RowStatus(self.state.status)

    @property
    def status_message(self) -> str | None:
        if isinstance(self.state, ErrorState):
            return self.state.message
        return None

    @property
    def error_excerpt(self) -> str | None:
        """First sentence of the error message, for inline display."""
        message = self.status_message
        if message is None:
            return None
        return message.split(".")[0]

    @property
    def pending_matches(self) -> list[ExternalMatch]:
        if isinstance(self.state, DisambiguationState):
            return self.state.matches
        return []

    def effective(self, field: str) -> str:
        """Value of an overridable field, preferring the manual override."""
        if field not in OVERRIDE_FIELDS:
            raise ValueError(f"Not an overridable field: {field}")
        if field in self.manual_overrides:
            return self.manual_overrides[field] or ""
        return getattr(self, field) or ""

    def has_invalid_mapcode(self) -> bool:
        """Whether the effective mapcode fails validation once normalized."""
        return not validate_mapcode(normalise_mapcode(self.effective("mapcode")))


class RemovedRow(BaseModel):
    """The row held in the one-slot undo buffer and where it used to be."""

    row: Row
    index: int = Field(ge=0)


class WorkingSet(BaseModel):
    """Everything persisted between sessions: the rows and the undo slot."""

    rows: list[Row] = Field(default_factory=list)
    last_removed: RemovedRow | None = None
