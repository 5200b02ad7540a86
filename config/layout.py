"""Tree layout settings."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LayoutSettings(BaseModel):
    """Geometry used to position conversation tree nodes."""

    node_width: float = Field(180.0, gt=0)
    node_height: float = Field(80.0, gt=0)
    horizontal_spacing: float = Field(240.0, ge=0)
    vertical_spacing: float = Field(120.0, ge=0)

    # Extra gap kept between neighbours on the same level
    padding: float = Field(20.0, ge=0)
    base_offset: float = 50.0
    root_x: float = 150.0

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def accept_short_names(cls, data):
        """Accept nodeWidth/hSpacing style keys from front-end configs."""
        if not isinstance(data, dict):
            return data
        aliases = {
            "nodeWidth": "node_width",
            "nodeHeight": "node_height",
            "hSpacing": "horizontal_spacing",
            "vSpacing": "vertical_spacing",
        }
        return {aliases.get(k, k): v for k, v in data.items()}

    @property
    def min_separation(self) -> float:
        return self.node_width + self.padding
