"""
Pygame display surface sink.

SurfaceSink keeps the rendered pixels in a numpy buffer, like ArraySink,
and copies each finished band onto a pygame surface so partial renders
show up while the rest of the image is still being computed.
"""

import pygame

from .renderer import ArraySink


class SurfaceSink(ArraySink):
    """
    Pixel sink that blits flushed rows to a pygame surface.

    Args:
        surface: Target pygame surface (usually the window)
        offset: (x, y) position of the canvas on the surface
        on_flush: Optional callable(rect) after each blit, e.g.
            pygame.display.update
    """

    def __init__(self, surface, offset=(0, 0), on_flush=None):
        super().__init__()
        self.surface = surface
        self.offset = offset
        self.after_blit = on_flush

    def flush_rows(self, start, stop):
        if stop <= start:
            return
        rows = self.pixels[start:stop, :, :3]
        # surfarray expects (width, height, 3)
        band = pygame.surfarray.make_surface(rows.swapaxes(0, 1))
        x, y = self.offset
        rect = self.surface.blit(band, (x, y + start))
        if self.after_blit is not None:
            self.after_blit(rect)
