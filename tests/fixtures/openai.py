"""OpenAI client stand-ins handed to flows through their ``client`` argument.

The flows only touch ``chat.completions.create`` and ``images.generate``, so
the stub mirrors that surface, records every request and replays queued
responses in order.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional


@dataclass
class Choice:
    """Represents a single completion choice returned by the stub."""

    content: Optional[str]

    @property
    def message(self) -> SimpleNamespace:
        return SimpleNamespace(content=self.content)


class OpenAIStub:
    """Lightweight stand-in for the ``OpenAI`` client."""

    def __init__(
        self,
        *,
        side_effect: Optional[Callable[[Dict[str, Any]], Any]] = None,
        **init_kwargs: Any,
    ):
        self.side_effect = side_effect
        self.init_kwargs = init_kwargs
        self.calls: List[Dict[str, Any]] = []
        self.image_calls: List[Dict[str, Any]] = []
        self.responses: List[Optional[str]] = []
        self.images_data: List[SimpleNamespace] = []
        self.chat = SimpleNamespace(
            completions=SimpleNamespace(create=self._create_completion)
        )
        self.images = SimpleNamespace(generate=self._generate_image)

    def queue_response(self, content: Optional[str]) -> None:
        """Append a response string returned on the next chat call."""

        self.responses.append(content)

    def queue_image(
        self, *, b64_json: Optional[str] = None, url: Optional[str] = None
    ) -> None:
        self.images_data.append(SimpleNamespace(b64_json=b64_json, url=url))

    def _create_completion(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.side_effect:
            result = self.side_effect(kwargs)
            if result is not None:
                return result
        content = self.responses.pop(0) if self.responses else ""
        return SimpleNamespace(choices=[Choice(content)])

    def _generate_image(self, **kwargs: Any) -> SimpleNamespace:
        self.image_calls.append(kwargs)
        data = [self.images_data.pop(0)] if self.images_data else []
        return SimpleNamespace(data=data)


class OpenAIStubFactory:
    """Callable that mimics the ``OpenAI`` constructor and tracks instances."""

    def __init__(self) -> None:
        self.instances: List[OpenAIStub] = []

    def __call__(self, *args: Any, **kwargs: Any) -> OpenAIStub:
        stub = OpenAIStub(**kwargs)
        self.instances.append(stub)
        return stub

    @property
    def last(self) -> Optional[OpenAIStub]:
        return self.instances[-1] if self.instances else None
