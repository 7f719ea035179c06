"""
Validated board configuration.

Board configuration arrives as a flat camelCase mapping from the wizard.
It is parsed into ``BoardConfig`` before synthesis so a bad value is
rejected up front instead of surfacing half way through a rule. Keys the
engine does not interpret (drawing references, notes) are kept verbatim.
"""

import re
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from switchboard_quoting.utils.exceptions import InvalidConfigurationError

YesNo = Literal["Yes", "No"]

BOARD_TYPES = (
    "Main Switchboard (MSB)",
    "Main Distribution Board (MDB)",
    "Distribution Board (DB)",
    "Prewired Whole Current Meter Panel",
    "Supply Authority CT Metering Enclosure 200-400A",
    "Tee-Off-Box Riser",
    "Tee-Off-Box End of Run",
    "Remote Meter Panel with Test Block",
)

# Current ratings each board type can be built for
ALLOWED_CURRENTS: dict[str, tuple[str, ...]] = {
    "Main Switchboard (MSB)": (
        "63A", "100A", "160A", "250A", "400A", "630A", "800A",
        "1000A", "1250A", "1600A", "2000A", "2500A", "3200A", "4000A",
    ),
    "Main Distribution Board (MDB)": ("100A", "160A", "250A", "400A", "630A", "800A"),
    "Distribution Board (DB)": ("63A", "100A", "160A", "250A"),
    "Prewired Whole Current Meter Panel": ("63A", "100A", "160A", "250A"),
    "Supply Authority CT Metering Enclosure 200-400A": ("250A", "400A"),
    "Tee-Off-Box Riser": ("400A", "630A"),
    "Tee-Off-Box End of Run": ("630A", "800A"),
    "Remote Meter Panel with Test Block": ("1000A", "1250A", "1600A", "2500A", "3200A", "4000A"),
}

ENCLOSURE_TYPES = ("Custom", "Cubic")

STAINLESS_MATERIALS = ("Powder 316 Stainless Steel", "316 Stainless Steel Natural Finish")

_YES_NO_FIELDS = (
    "spd", "ctMetering", "meterPanel", "wholeCurrentMetering",
    "baseRequired", "isOver50kA", "isNonStandardColour", "drawingRef",
)

_AMPS_PATTERN = re.compile(r"^\s*(\d+)\s*A?\s*$", re.IGNORECASE)


class BoardConfig(BaseModel):
    """Complete configuration of one board. Replaced wholesale on update."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str | None = None
    name: str | None = None
    location: Literal["Indoor", "Outdoor"] | None = None
    ip_rating: str | None = Field(default=None, alias="ipRating")
    form: str | None = None
    fault_rating: str | None = Field(default=None, alias="faultRating")
    enclosure_type: Literal["Custom", "Cubic"] | None = Field(default=None, alias="enclosureType")
    material: str | None = None
    current_rating: str | None = Field(default=None, alias="currentRating")
    enclosure_depth: Literal[400, 600, 800] | None = Field(default=None, alias="enclosureDepth")

    spd: YesNo | None = None

    ct_metering: YesNo | None = Field(default=None, alias="ctMetering")
    ct_type: Literal["S", "T", "W", "U"] | None = Field(default=None, alias="ctType")
    ct_quantity: int | None = Field(default=None, alias="ctQuantity", ge=0)
    meter_panel: YesNo | None = Field(default=None, alias="meterPanel")

    whole_current_metering: YesNo | None = Field(default=None, alias="wholeCurrentMetering")
    wc_type: Literal["100A wiring 3-phase", "100A wiring 1-phase"] | None = Field(default=None, alias="wcType")
    wc_quantity: int | None = Field(default=None, alias="wcQuantity", ge=0)

    tier_count: int | None = Field(default=None, alias="tierCount", ge=0)
    base_required: YesNo | None = Field(default=None, alias="baseRequired")
    insulation_level: Literal["none", "air", "fully"] | None = Field(default=None, alias="insulationLevel")

    total_compartments: int | None = Field(default=None, alias="totalCompartments", ge=0)
    is_over_50ka: YesNo | None = Field(default=None, alias="isOver50kA")
    is_non_standard_colour: YesNo | None = Field(default=None, alias="isNonStandardColour")

    board_width: float | None = Field(default=None, alias="boardWidth", ge=0)
    shipping_sections: int | None = Field(default=None, alias="shippingSections", ge=0)

    @model_validator(mode="before")
    @classmethod
    def _normalise_raw(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = {k: (None if isinstance(v, str) and not v.strip() else v) for k, v in data.items()}

        # Older boards stored the material in enclosureType
        enclosure = data.get("enclosureType")
        if isinstance(enclosure, str) and enclosure not in ENCLOSURE_TYPES:
            data["material"] = enclosure
            data["enclosureType"] = "Custom"

        depth = data.get("enclosureDepth")
        if isinstance(depth, str) and depth.strip().isdigit():
            data["enclosureDepth"] = int(depth)

        level = data.get("insulationLevel")
        if isinstance(level, str):
            data["insulationLevel"] = level.strip().lower()

        for key in _YES_NO_FIELDS:
            value = data.get(key)
            if isinstance(value, bool):
                data[key] = "Yes" if value else "No"
            elif isinstance(value, str):
                data[key] = value.strip().capitalize()
        return data

    @field_validator("type")
    @classmethod
    def _known_board_type(cls, value: str | None) -> str | None:
        if value is not None and value not in BOARD_TYPES:
            raise ValueError(f"unknown board type {value!r}")
        return value

    @field_validator("current_rating", mode="before")
    @classmethod
    def _current_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return f"{int(value)}A"
        return value

    @model_validator(mode="after")
    def _cross_field_requirements(self) -> "BoardConfig":
        if self.whole_current_metering == "Yes":
            if self.wc_type is None:
                raise ValueError("wcType is required when wholeCurrentMetering is enabled")
            if not self.wc_quantity:
                raise ValueError("wcQuantity is required when wholeCurrentMetering is enabled")
        if self.ct_metering == "Yes":
            if self.ct_type is None:
                raise ValueError("ctType is required when ctMetering is enabled")
            if self.current_amps is None:
                raise ValueError("currentRating is required when ctMetering is enabled")
        if (self.ct_metering == "Yes" or self.meter_panel == "Yes") and not self.ct_quantity:
            raise ValueError("ctQuantity is required when ctMetering or meterPanel is enabled")
        if self.base_required == "Yes" and self.enclosure_type != "Cubic" and not self.tier_count:
            raise ValueError("tierCount is required when a base is requested")
        if self.type is not None and self.current_amps is not None:
            allowed = ALLOWED_CURRENTS[self.type]
            if f"{self.current_amps}A" not in allowed:
                raise ValueError(
                    f"currentRating {self.current_rating} is not available for {self.type} "
                    f"(allowed: {', '.join(allowed)})"
                )
        return self

    @property
    def current_amps(self) -> int | None:
        if self.current_rating is None:
            return None
        match = _AMPS_PATTERN.match(self.current_rating)
        return int(match.group(1)) if match else None

    @property
    def tiers(self) -> int:
        return self.tier_count or 0

    @property
    def is_cubic(self) -> bool:
        return self.enclosure_type == "Cubic"

    @property
    def is_custom(self) -> bool:
        return self.enclosure_type == "Custom"

    @classmethod
    def parse(
        cls,
        raw: "Mapping[str, Any] | BoardConfig | None",
        board_type: str | None = None,
    ) -> "BoardConfig":
        """
        Validate a raw mapping, raising InvalidConfigurationError on failure.

        A known board_type overrides the configuration's own type, so the
        per-type current ratings are checked against the board being built.
        """
        data = raw.to_storage() if isinstance(raw, BoardConfig) else dict(raw or {})
        if board_type in ALLOWED_CURRENTS:
            data["type"] = board_type
        elif isinstance(raw, BoardConfig):
            return raw
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise InvalidConfigurationError(
                f"Invalid board configuration: {first.get('msg')}",
                field=field,
            ) from e

    def to_storage(self) -> dict[str, Any]:
        """Serialized form persisted on the board."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
