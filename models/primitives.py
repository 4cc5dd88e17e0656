"""
Play-field geometry.

Screen convention: origin top-left, x to the right, y downward. Targets
fall by increasing y.
"""

from pydantic import BaseModel, ConfigDict, Field


class Point2D(BaseModel):
    """A pointer position or a target center, in play-field pixels.

    Examples:
        >>> Point2D(x=120.0, y=40.0).y
        40.0
    """
    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    def __str__(self) -> str:
        return f"({self.x:.1f}, {self.y:.1f})"


class Rectangle(BaseModel):
    """Axis-aligned hit box anchored at its top-left corner.

    All four edges belong to the box: a click on the border is a hit.

    Examples:
        >>> box = Rectangle.centered(Point2D(x=100, y=100), 50, 40)
        >>> box.x, box.bottom
        (75.0, 120.0)
        >>> box.contains_point(Point2D(x=125, y=80))
        True
    """
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float = Field(gt=0)
    height: float = Field(gt=0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point2D:
        return Point2D(x=self.x + self.width / 2, y=self.y + self.height / 2)

    @classmethod
    def centered(cls, center: Point2D, width: float, height: float) -> 'Rectangle':
        return cls(x=center.x - width / 2, y=center.y - height / 2,
                   width=width, height=height)

    def contains_point(self, point: Point2D) -> bool:
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom
