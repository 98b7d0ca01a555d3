"""
Pipeline Base

A pipeline reduces an in-memory record set to a small derived output.
Pipelines know nothing about the store, Kafka or metrics; the handlers
module binds them to live data.
"""

from abc import ABC, abstractmethod


class Pipeline(ABC):
    """
    Base class for analytics pipelines.

    Subclasses implement process() and return a new immutable output on
    every call; outputs are never mutated in place.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def process(self, *args, **kwargs):
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
