# 0.03 rad per frame at 60 fps
RADIANS_PER_SECOND = 1.8


class Platter:
    """
    Rotation of a deck's disc for the renderer.
    Advanced by elapsed audio time, so the spin rate does not depend on how
    often frames are drawn.
    """
    def __init__(self, speed: float = RADIANS_PER_SECOND):
        self.speed = float(speed)
        self.angle = 0.0
        self._last = None

    def advance(self, elapsed: float, rate: float = 1.0) -> float:
        if elapsed > 0:
            self.angle += self.speed * rate * elapsed
        return self.angle

    def follow(self, now: float, playing: bool, rate: float = 1.0) -> float:
        """
        Advance by the clock time since the previous call, while playing.
        The first call (and any call while stopped) only records `now`.
        """
        if playing and self._last is not None:
            self.advance(now - self._last, rate)
        self._last = now
        return self.angle
