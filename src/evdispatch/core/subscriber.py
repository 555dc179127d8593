# src/evdispatch/core/subscriber.py
from __future__ import annotations

from typing import Any, ClassVar, Mapping, Optional, Sequence


class Subscriber:
    """
    Static table of event -> listener refs, applied to a dispatcher in bulk.

    Declare the table on a subclass:

        class OrderSubscriber(Subscriber):
            listen = {"order.*": ["audit.listener"], "order.paid": [send_receipt]}

    or pass it to the constructor, which takes precedence.
    """

    listen: ClassVar[Mapping[str, Sequence[Any]]] = {}

    def __init__(self, listen: Optional[Mapping[str, Sequence[Any]]] = None):
        if listen is not None:
            self.listen = dict(listen)  # type: ignore[misc]

    def subscribe(self, dispatcher: Any) -> None:
        for event, refs in self.listen.items():
            for ref in refs:
                dispatcher.listen(event, ref)

    def __len__(self) -> int:
        return sum(len(refs) for refs in self.listen.values())
