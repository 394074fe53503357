"""
Logo Rendering Collaborators
Drawing surfaces the interpreter sends line segments to
"""

from typing import List, Tuple
from dataclasses import dataclass
import json
import pykka


DEFAULT_WIDTH = (1920 // 2) - 20
DEFAULT_HEIGHT = 1080 - 20
DEFAULT_LINE_WIDTH = 10
DEFAULT_STROKE = "black"


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __iter__(self):
        return iter((self.x, self.y))


Segment = Tuple[Point, Point]


class Canvas:
    """Minimal surface: draw segments, then persist an image"""

    def draw_line(self, start: Point, end: Point) -> None:
        raise NotImplementedError

    def persist(self) -> bytes:
        raise NotImplementedError


class RecordingCanvas(Canvas):
    """Keeps segments in drawing order; used for buffering and tests"""

    def __init__(self):
        self.segments: List[Segment] = []

    def draw_line(self, start: Point, end: Point) -> None:
        self.segments.append((start, end))

    def replay(self, target: Canvas) -> None:
        """Re-issue every recorded segment on another canvas"""
        for start, end in self.segments:
            target.draw_line(start, end)

    def persist(self) -> bytes:
        data = [[list(start), list(end)] for start, end in self.segments]
        return json.dumps(data).encode('utf-8')


class SvgCanvas(Canvas):
    """Renders segments as an SVG document"""

    def __init__(self, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT,
                 line_width: float = DEFAULT_LINE_WIDTH, stroke: str = DEFAULT_STROKE):
        self.width = width
        self.height = height
        self.line_width = line_width
        self.stroke = stroke
        self.lines: List[str] = []

    def draw_line(self, start: Point, end: Point) -> None:
        self.lines.append(
            f'<line x1="{start.x:.2f}" y1="{start.y:.2f}" x2="{end.x:.2f}" y2="{end.y:.2f}" />'
        )

    def persist(self) -> bytes:
        header = (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}">'
        )
        group = (
            f'<g stroke="{self.stroke}" stroke-width="{self.line_width}" '
            f'stroke-linecap="round" fill="none">'
        )
        body = "\n".join([header, group] + [f"  {line}" for line in self.lines] + ["</g>", "</svg>"])
        return (body + "\n").encode('utf-8')

    def save(self, path: str) -> None:
        with open(path, 'wb') as f:
            f.write(self.persist())


# ============================================================================
# ACTOR SURFACE (Using Pykka)
# ============================================================================

class CanvasActor(pykka.ThreadingActor):
    """Owns a canvas; messages are applied one at a time in arrival order"""

    def __init__(self, canvas: Canvas):
        super().__init__()
        self.canvas = canvas

    def on_receive(self, message):
        command = message[0]
        if command == 'draw_line':
            self.canvas.draw_line(message[1], message[2])
            return None
        elif command == 'persist':
            return self.canvas.persist()
        raise ValueError(f"Unknown canvas command: {command}")


class ActorCanvas(Canvas):
    """Canvas facade that lets concurrent evaluations share one surface"""

    def __init__(self, canvas: Canvas):
        self.canvas = canvas
        self.actor_ref = CanvasActor.start(canvas)

    def draw_line(self, start: Point, end: Point) -> None:
        self.actor_ref.tell(('draw_line', start, end))

    def persist(self, timeout: float = 5.0) -> bytes:
        # Mailbox order guarantees every earlier draw has been applied
        return self.actor_ref.ask(('persist',), timeout=timeout)

    def stop(self) -> None:
        if self.actor_ref.is_alive():
            self.actor_ref.stop()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.stop()
