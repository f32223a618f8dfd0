"""Producer interface and built-in producers.

``ProducerRegistry`` lives in ``reliable_stream.producers.registry``; it
depends on the reliability layer, which itself depends on this package.
"""

from .base import StreamProducer
from .scripted import SCENARIOS, Delay, ScriptedProducer, Stall

__all__ = [
    "StreamProducer",
    "ScriptedProducer",
    "Delay",
    "Stall",
    "SCENARIOS",
]
