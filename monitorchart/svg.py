"""SVG rendering of chart geometry."""

import xml.etree.ElementTree as ET

from .geometry import ChartGeometry

SVG_NS = "http://www.w3.org/2000/svg"

GRID_STROKE = "rgba(255, 255, 255, 0.08)"
X_GRID_STROKE = "rgba(255, 255, 255, 0.06)"
LABEL_FILL = "rgba(255, 255, 255, 0.62)"
DOWN_FILL = "rgba(255, 77, 79, 0.20)"
UP_COLOR = "#2dd27b"
DOWN_COLOR = "#ff6b6b"

EMPTY_MESSAGE = "No metrics"


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def render_svg(geometry: ChartGeometry) -> str:
    """Render chart geometry as a standalone SVG document.

    Draw order is gridlines and labels, down bands, up polylines, then
    markers, so markers always sit on top of the shading.
    """
    layout = geometry.layout
    svg = ET.Element(
        "svg",
        xmlns=SVG_NS,
        viewBox=f"0 0 {layout.width} {layout.height}",
        width=str(layout.width),
        height=str(layout.height),
        preserveAspectRatio="none",
    )

    for tick in geometry.y_ticks:
        ET.SubElement(
            svg,
            "line",
            x1=_fmt(layout.plot_left),
            x2=_fmt(layout.plot_right),
            y1=_fmt(tick.y),
            y2=_fmt(tick.y),
            stroke=GRID_STROKE,
        ).set("stroke-width", "1")
        label = ET.SubElement(svg, "text", x=_fmt(layout.plot_left - 8), y=_fmt(tick.y + 4), fill=LABEL_FILL)
        label.set("text-anchor", "end")
        label.set("font-size", "12")
        label.text = tick.label

    for tick in geometry.x_ticks:
        label = ET.SubElement(svg, "text", x=_fmt(tick.x), y=_fmt(layout.height - 8), fill=LABEL_FILL)
        label.set("text-anchor", tick.anchor)
        label.set("font-size", "11")
        label.text = tick.label
        ET.SubElement(
            svg,
            "line",
            x1=_fmt(tick.x),
            x2=_fmt(tick.x),
            y1=_fmt(layout.plot_top),
            y2=_fmt(layout.plot_bottom),
            stroke=X_GRID_STROKE,
        ).set("stroke-width", "1")

    for band in geometry.down_bands:
        ET.SubElement(
            svg,
            "rect",
            x=_fmt(band.x_start),
            y=_fmt(band.top),
            width=_fmt(band.width),
            height=_fmt(band.bottom - band.top),
            fill=DOWN_FILL,
        )

    for segment in geometry.up_segments:
        poly = ET.SubElement(
            svg,
            "polyline",
            fill="none",
            stroke=UP_COLOR,
            points=" ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in segment.points),
        )
        poly.set("stroke-width", "3")
        poly.set("stroke-linecap", "round")
        poly.set("stroke-linejoin", "round")

    for marker in geometry.markers:
        ET.SubElement(
            svg,
            "circle",
            cx=_fmt(marker.x),
            cy=_fmt(marker.y),
            r=str(marker.radius),
            fill=UP_COLOR if marker.ok else DOWN_COLOR,
        )

    if geometry.empty:
        empty = ET.SubElement(
            svg,
            "text",
            x=_fmt(layout.plot_left + layout.plot_width / 2),
            y=_fmt(layout.plot_top + layout.plot_height / 2),
            fill=LABEL_FILL,
        )
        empty.set("text-anchor", "middle")
        empty.set("font-size", "13")
        empty.text = EMPTY_MESSAGE

    return ET.tostring(svg, encoding="unicode")
