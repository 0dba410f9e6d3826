"""Typed content blocks: config variants, defaults, and the block constructor"""

from enum import Enum
from typing import Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def generate_id(prefix: str) -> str:
    """Return a fresh unique id such as 'block-3f9a1c0b7d2e'."""
    return f"{prefix}-{uuid4().hex[:12]}"


class BlockType(str, Enum):
    """Closed set of block variants; a block never changes type after creation"""
    header = "header"
    text = "text"
    media = "media"
    options = "options"
    fields = "fields"
    price = "price"
    button = "button"
    banner = "banner"
    list = "list"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class HeaderConfig(_Frozen):
    title: str = ""
    description: str = ""


class TextConfig(_Frozen):
    content: str = ""


class FocalPoint(_Frozen):
    x: float = Field(default=50, ge=0, le=100)
    y: float = Field(default=50, ge=0, le=100)


class MediaConfig(_Frozen):
    type: Literal["image", "video"] = "image"
    url: str = ""                               # may hold an inline data: asset until migrated
    alt: Optional[str] = None
    orientation: Literal["horizontal", "vertical"] = "horizontal"
    video_thumbnail: Optional[str] = None       # may hold an inline data: asset until migrated
    focal_point: Optional[FocalPoint] = None


class OptionItem(_Frozen):
    id: str
    text: str = ""
    emoji: Optional[str] = None
    outcome_id: Optional[str] = None
    image_url: Optional[str] = None             # may hold an inline data: asset until migrated


class OptionsConfig(_Frozen):
    items: list[OptionItem] = Field(default_factory=list)
    selection_type: Literal["single", "multiple"] = "single"


class FieldItem(_Frozen):
    id: str
    label: str = ""
    type: Literal["text", "email", "phone", "number", "textarea"] = "text"
    placeholder: Optional[str] = None
    required: bool = False


class FieldsConfig(_Frozen):
    items: list[FieldItem] = Field(default_factory=list)


class PriceItem(_Frozen):
    id: str
    title: str = ""
    prefix: Optional[str] = None
    value: str = ""
    suffix: Optional[str] = None
    original_price: Optional[str] = None
    show_original_price: bool = False
    highlight_text: Optional[str] = None
    show_highlight: bool = False
    redirect_url: Optional[str] = None


class PriceConfig(_Frozen):
    items: list[PriceItem] = Field(default_factory=list)
    selection_type: Literal["single", "multiple"] = "single"


class ButtonConfig(_Frozen):
    text: str = ""
    action: Literal["url", "next_step", "selected_price"] = "next_step"
    url: Optional[str] = None


class BannerConfig(_Frozen):
    urgency: Literal["info", "warning", "danger"] = "info"
    text: str = ""
    emoji: Optional[str] = None


class ListItem(_Frozen):
    id: str
    text: str = ""
    emoji: Optional[str] = None


class ListConfig(_Frozen):
    items: list[ListItem] = Field(default_factory=list)


BlockConfig = Union[
    HeaderConfig, TextConfig, MediaConfig, OptionsConfig, FieldsConfig,
    PriceConfig, ButtonConfig, BannerConfig, ListConfig,
]

CONFIG_MODELS: dict[BlockType, type[BaseModel]] = {
    BlockType.header:  HeaderConfig,
    BlockType.text:    TextConfig,
    BlockType.media:   MediaConfig,
    BlockType.options: OptionsConfig,
    BlockType.fields:  FieldsConfig,
    BlockType.price:   PriceConfig,
    BlockType.button:  ButtonConfig,
    BlockType.banner:  BannerConfig,
    BlockType.list:    ListConfig,
}


class Block(_Frozen):
    """A single configurable unit of content owned by exactly one step or outcome"""
    id: str
    type: BlockType
    enabled: bool = True
    config: BlockConfig

    @model_validator(mode="before")
    @classmethod
    def _config_for_type(cls, data: Any) -> Any:
        """Validate `config` against the model selected by `type`, not by union guessing."""
        if not isinstance(data, dict) or "type" not in data:
            return data
        model = CONFIG_MODELS[BlockType(data["type"])]
        config = data.get("config")
        if config is None:
            config = default_block_config(BlockType(data["type"]))
        elif isinstance(config, dict):
            config = model.model_validate(config)
        elif not isinstance(config, model):
            raise ValueError(f"{type(config).__name__} is not a valid config for a {data['type']} block")
        return {**data, "config": config}

    def with_config(self, **changes) -> "Block":
        """Return a copy with config fields replaced; the original is untouched."""
        merged = {**self.config.model_dump(), **changes}
        return self.model_copy(update={"config": type(self.config).model_validate(merged)})


def default_block_config(block_type: BlockType) -> BlockConfig:
    """Structurally valid default configuration for a block type."""
    block_type = BlockType(block_type)
    if block_type == BlockType.fields:
        return FieldsConfig(items=[
            FieldItem(id=generate_id("field"), label="Name", type="text",
                      placeholder="Type your name...", required=True),
        ])
    if block_type == BlockType.price:
        return PriceConfig(items=[
            PriceItem(id=generate_id("price"), title="Plan", value="$99.90", suffix="one-time"),
        ])
    if block_type == BlockType.button:
        return ButtonConfig(text="Continue", action="next_step")
    if block_type == BlockType.list:
        return ListConfig(items=[
            ListItem(id=generate_id("list"), text=f"List item {n}", emoji="✓") for n in (1, 2, 3)
        ])
    return CONFIG_MODELS[block_type]()


def create_block(block_type: BlockType, **overrides) -> Block:
    """New enabled block with a fresh id and the type's default config."""
    block_type = BlockType(block_type)
    data = {"id": generate_id("block"), "type": block_type, "enabled": True,
            "config": default_block_config(block_type)}
    data.update(overrides)
    return Block(**data)
