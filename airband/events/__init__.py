import time

from .dispatcher import EventDispatcher, NoteEvent, EntityPhase


def build_dispatcher(config, zones=None, scheduler=None, clock=time.monotonic) -> EventDispatcher:
    """Build a dispatcher from an ``AirbandConfig``."""
    return EventDispatcher(zones, config.motion, config.dispatch, scheduler=scheduler, clock=clock)


__all__ = ['EventDispatcher', 'NoteEvent', 'EntityPhase', 'build_dispatcher']
