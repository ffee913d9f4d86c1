from __future__ import annotations

from dataclasses import dataclass

# Minimum vertical overlap, relative to the shorter box, for two boxes to share a band.
BAND_OVERLAP = 0.5

Box = tuple[float, float, float, float]  # x0, y0, x1, y1


@dataclass(frozen=True)
class ReadingOrderResult:
    ordered_indices: list[int]  # indices into the input boxes
    band_assignment: list[int]  # per box, 0..n_bands-1
    n_bands: int


def vertical_overlap(a: Box, b: Box) -> float:
    """Overlap of the vertical extents, as a fraction of the shorter extent."""
    inter = min(a[3], b[3]) - max(a[1], b[1])
    shorter = min(a[3] - a[1], b[3] - b[1])
    if shorter <= 0:
        return 1.0 if inter >= 0 and a[1] <= b[3] and b[1] <= a[3] else 0.0
    return max(0.0, inter) / shorter


def infer_reading_order(
    boxes: list[Box],
    service_order: list[int] | None = None,
    *,
    overlap: float = BAND_OVERLAP,
) -> ReadingOrderResult:
    """
    Group boxes into horizontal bands and read bands top-down, left to right.

    - Boxes are visited by (top, service order); a box joins the current band
      when its vertical overlap with every box already in the band exceeds
      ``overlap``. A tall box therefore never chains stacked lines together.
    - Inside a band boxes are ordered by (left edge, service order).
    """
    if not boxes:
        return ReadingOrderResult(ordered_indices=[], band_assignment=[], n_bands=0)
    if service_order is None:
        service_order = list(range(len(boxes)))

    by_top = sorted(range(len(boxes)), key=lambda i: (boxes[i][1], service_order[i]))
    bands: list[list[int]] = []
    for i in by_top:
        if bands and all(vertical_overlap(boxes[j], boxes[i]) > overlap for j in bands[-1]):
            bands[-1].append(i)
        else:
            bands.append([i])

    ordered: list[int] = []
    assignment = [0] * len(boxes)
    for n, band in enumerate(bands):
        for i in sorted(band, key=lambda i: (boxes[i][0], service_order[i])):
            ordered.append(i)
            assignment[i] = n
    return ReadingOrderResult(ordered_indices=ordered, band_assignment=assignment, n_bands=len(bands))
