"""Ken-Burns camera movement applied to scene backgrounds."""

from dataclasses import dataclass
from typing import Callable, Dict, Sequence

from ..models import CameraMovement
from .interpolation import EASE_OUT, interpolate

ZOOM_SCALE = 1.15
PAN_DISTANCE = 40.0


@dataclass(frozen=True)
class CameraTransform:
    """``scale(scale) translate(translate_x, translate_y)`` about the frame centre."""

    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0


STATIC = CameraTransform()


def movement_for(order_index: int, movements: Sequence[CameraMovement]) -> CameraMovement:
    """Round-robin assignment of camera movements by scene order."""
    if not movements:
        return CameraMovement.STATIC
    return movements[order_index % len(movements)]


def _zoom_in(frame: float, total: float) -> CameraTransform:
    return CameraTransform(scale=interpolate(frame, [0, total], [1, ZOOM_SCALE], EASE_OUT))


def _zoom_out(frame: float, total: float) -> CameraTransform:
    return CameraTransform(scale=interpolate(frame, [0, total], [ZOOM_SCALE, 1], EASE_OUT))


def _pan_left(frame: float, total: float) -> CameraTransform:
    return CameraTransform(
        scale=ZOOM_SCALE,
        translate_x=interpolate(frame, [0, total], [0, -PAN_DISTANCE]),
    )


def _pan_right(frame: float, total: float) -> CameraTransform:
    return CameraTransform(
        scale=ZOOM_SCALE,
        translate_x=interpolate(frame, [0, total], [-PAN_DISTANCE, 0]),
    )


def _pan_up(frame: float, total: float) -> CameraTransform:
    return CameraTransform(
        scale=ZOOM_SCALE,
        translate_y=interpolate(frame, [0, total], [0, -PAN_DISTANCE]),
    )


def _pan_down(frame: float, total: float) -> CameraTransform:
    return CameraTransform(
        scale=ZOOM_SCALE,
        translate_y=interpolate(frame, [0, total], [-PAN_DISTANCE, 0]),
    )


def _static(frame: float, total: float) -> CameraTransform:
    return STATIC


MOVEMENTS: Dict[CameraMovement, Callable[[float, float], CameraTransform]] = {
    CameraMovement.ZOOM_IN: _zoom_in,
    CameraMovement.ZOOM_OUT: _zoom_out,
    CameraMovement.PAN_LEFT: _pan_left,
    CameraMovement.PAN_RIGHT: _pan_right,
    CameraMovement.PAN_UP: _pan_up,
    CameraMovement.PAN_DOWN: _pan_down,
    CameraMovement.STATIC: _static,
}


def resolve_camera(
    local_frame: int,
    frame_count: int,
    movement: CameraMovement,
) -> CameraTransform:
    """Camera transform at ``local_frame`` of a scene lasting ``frame_count`` frames."""
    return MOVEMENTS.get(movement, _static)(local_frame, frame_count)
