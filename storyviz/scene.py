"""
Retained scene graph for the visualizations.

A Scene is an ordered list of named layers. Static layers are built exactly
once per mount through ``ensure_static``; dynamic layers are swapped wholesale
through ``replace`` so a redraw can never leave stale shapes behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional
from xml.sax.saxutils import escape, quoteattr

from .scales import _fmt


@dataclass
class Shape:
    id: str
    tag: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    text: Optional[str] = None
    children: List["Shape"] = field(default_factory=list)
    datum: Any = None
    interactive: bool = False

    def walk(self) -> Iterator["Shape"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict:
        out = {"id": self.id, "tag": self.tag, "attrs": dict(self.attrs)}
        if self.text is not None:
            out["text"] = self.text
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        if self.interactive:
            out["interactive"] = True
        return out


@dataclass
class Layer:
    name: str
    static: bool = False
    shapes: List[Shape] = field(default_factory=list)
    attrs: Dict[str, Any] = field(default_factory=dict)


class Scene:
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.layers: Dict[str, Layer] = {}
        self.builds: Dict[str, int] = {}

    def has_layer(self, name: str) -> bool:
        return name in self.layers

    def add_layer(self, name: str, static: bool = False, **attrs) -> Layer:
        if name not in self.layers:
            self.layers[name] = Layer(name=name, static=static, attrs=attrs)
        return self.layers[name]

    def ensure_static(self, name: str, build: Callable[[], List[Shape]], rebuild: bool = False, **attrs) -> Layer:
        """Build a static layer once. ``rebuild`` re-runs ``build`` in place, for a new dataset."""
        if name in self.layers and not rebuild:
            return self.layers[name]
        layer = self.add_layer(name, static=True, **attrs)
        layer.shapes = list(build())
        self.builds[name] = self.builds.get(name, 0) + 1
        return layer

    def replace(self, name: str, shapes: List[Shape]) -> List[Shape]:
        layer = self.add_layer(name)
        if layer.static:
            raise ValueError(f"layer {name!r} is static")
        removed = layer.shapes
        layer.shapes = list(shapes)
        self.builds[name] = self.builds.get(name, 0) + 1
        return removed

    def shapes(self, layer: Optional[str] = None) -> Iterator[Shape]:
        layers = [self.layers[layer]] if layer else self.layers.values()
        for lyr in layers:
            for shape in lyr.shapes:
                yield from shape.walk()

    def find(self, shape_id: str) -> Optional[Shape]:
        for shape in self.shapes():
            if shape.id == shape_id:
                return shape
        return None

    def count(self, layer: Optional[str] = None, tag: Optional[str] = None) -> int:
        return sum(1 for s in self.shapes(layer) if tag is None or s.tag == tag)

    def clear(self) -> None:
        self.layers.clear()
        self.builds.clear()

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "layers": [
                {
                    "name": layer.name,
                    "static": layer.static,
                    "attrs": dict(layer.attrs),
                    "shapes": [s.to_dict() for s in layer.shapes],
                }
                for layer in self.layers.values()
            ],
        }

    def to_svg(self) -> str:
        out = [
            f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {self.width} {self.height}" '
            'style="width:100%;height:auto;overflow:visible">'
        ]
        for layer in self.layers.values():
            out.append(f"<g{_attrs({'class': layer.name, **layer.attrs})}>")
            out.extend(_svg(shape) for shape in layer.shapes)
            out.append("</g>")
        out.append("</svg>")
        return "".join(out)


def _value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _fmt(value)
    return str(value)


def _attrs(attrs: Dict[str, Any]) -> str:
    return "".join(f" {k}={quoteattr(_value(v))}" for k, v in attrs.items() if v is not None)


def _svg(shape: Shape) -> str:
    inner = escape(shape.text) if shape.text is not None else ""
    inner += "".join(_svg(child) for child in shape.children)
    attrs = _attrs({"id": shape.id, **shape.attrs})
    if not inner:
        return f"<{shape.tag}{attrs}/>"
    return f"<{shape.tag}{attrs}>{inner}</{shape.tag}>"
