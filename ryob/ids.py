"""Typed integer identifiers, one per entity kind.

They are plain ints at runtime; a type checker refuses to pass a ``TopicId``
where a ``UserId`` is expected.
"""
from typing import NewType

UserId = NewType("UserId", int)
TopicId = NewType("TopicId", int)
PostId = NewType("PostId", int)
