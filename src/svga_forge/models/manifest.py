"""
Manifest Models
===============

Typed model of the `movie.spec` manifest bundled inside each archive.

Manifest Contract:
    {
        "version": "2.0",
        "params": {
            "viewBox": {"width": 320, "height": 240},
            "fps": 24,
            "frames": 48
        },
        "images": {"img_0": "img_0.png", ...},
        "sprites": [
            {
                "imageKey": null,
                "frames": [
                    {
                        "alpha": 1,
                        "transform": {"a": 1, "b": 0, "c": 0, "d": 1, "tx": 0, "ty": 0},
                        "imageKey": "img_0",
                        "layout": {"x": 0, "y": 0, "width": 320, "height": 240}
                    },
                    ...
                ]
            }
        ]
    }

Design Rules:
    - Exactly one sprite, one placement per frame
    - Every placement uses the identity transform and the full canvas
    - params.frames always equals the number of placements
"""

from typing import Annotated, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


MANIFEST_VERSION = "2.0"

# integral values stay integers in the JSON output
Number = Union[int, float]
Alpha = Union[Annotated[int, Field(ge=0, le=1)], Annotated[float, Field(ge=0, le=1)]]


def image_key(index: int) -> str:
    """Deterministic image key for the frame at `index`."""
    return f"img_{index}"


class ViewBox(BaseModel):
    """Canvas size in pixels."""

    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)


class MovieParams(BaseModel):
    """Global playback parameters."""

    model_config = ConfigDict(populate_by_name=True)

    view_box: ViewBox = Field(..., alias="viewBox")
    fps: int = Field(..., ge=1, le=60)
    frames: int = Field(..., ge=0)


class Transform(BaseModel):
    """2D affine matrix. Defaults to identity."""

    a: Number = 1
    b: Number = 0
    c: Number = 0
    d: Number = 1
    tx: Number = 0
    ty: Number = 0


class Layout(BaseModel):
    """Placement rectangle in canvas coordinates."""

    x: int = 0
    y: int = 0
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)


class SpriteFrame(BaseModel):
    """One frame placement inside a sprite."""

    model_config = ConfigDict(populate_by_name=True)

    alpha: Alpha = 1
    transform: Transform = Field(default_factory=Transform)
    image_key: str = Field(..., alias="imageKey")
    layout: Layout


class Sprite(BaseModel):
    """A visual element made of per-frame placements."""

    model_config = ConfigDict(populate_by_name=True)

    image_key: Optional[str] = Field(default=None, alias="imageKey")
    frames: List[SpriteFrame] = Field(default_factory=list)


class MovieSpec(BaseModel):
    """Complete manifest."""

    version: str = MANIFEST_VERSION
    params: MovieParams
    images: Dict[str, str] = Field(default_factory=dict)
    sprites: List[Sprite] = Field(default_factory=list)

    @classmethod
    def full_frame(
        cls,
        width: int,
        height: int,
        fps: int,
        frame_count: int,
        version: str = MANIFEST_VERSION,
    ) -> "MovieSpec":
        """
        Build a single-sprite manifest with one full-canvas placement per frame.

        The image table is left empty; the encoder fills it as frames are packed.
        """
        placements = [
            SpriteFrame(
                image_key=image_key(i),
                layout=Layout(width=width, height=height),
            )
            for i in range(frame_count)
        ]
        return cls(
            version=version,
            params=MovieParams(
                view_box=ViewBox(width=width, height=height),
                fps=fps,
                frames=frame_count,
            ),
            sprites=[Sprite(frames=placements)],
        )

    def to_json(self) -> str:
        """Serialize using the manifest's camelCase keys."""
        return self.model_dump_json(by_alias=True)
