from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class BorderStyle(str, Enum):
    GRADIENT = "gradient"
    RAINBOW = "rainbow"
    NEON = "neon"
    FIRE = "fire"
    OCEAN = "ocean"


class _Document(BaseModel):
    # Unknown keys are kept so editor features can ship ahead of the schema.
    model_config = ConfigDict(extra="allow")


class PersonalInfo(_Document):
    name: str = ""
    title: str = ""
    email: str = ""
    showEmail: Optional[bool] = None
    phone: str = ""
    showPhone: Optional[bool] = None
    image: Optional[str] = None
    enable3D: Optional[bool] = None
    enableGradient: Optional[bool] = None
    borderStyle: Optional[BorderStyle] = None


class ContentBlock(_Document):
    """One renderable unit. `image`/`imageLink` accept the legacy single-string shape."""

    type: str = "text"
    content: Optional[str] = None
    duration: Optional[str] = None
    enableGlassEffect: Optional[bool] = None
    image: Union[List[str], str, None] = None
    imageLink: Union[List[Optional[str]], str, None] = None


class Section(_Document):
    id: Optional[str] = None
    title: Optional[str] = None
    enableGlassEffect: Optional[bool] = None
    blocks: List[ContentBlock] = Field(default_factory=list)


class Persona(_Document):
    personal: PersonalInfo
    sections: List[Section] = Field(default_factory=list)


class ProfileDocument(_Document):
    web2: Persona
    web3: Persona
