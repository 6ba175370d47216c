"""
Typed descriptors produced by metadata discovery and consumed by the resolver,
and the names view classes and live requests map to.

Nothing here imports DRF views: apps.core.permissions depends on this module
and is itself loaded while DRF builds APIView.
"""
from dataclasses import dataclass
from typing import Tuple

from apps.rbac.annotations import SecurityAnnotation


@dataclass(frozen=True)
class GroupDescriptor:
    """A view class: its dotted name and the annotations declared on it."""

    name: str
    annotations: Tuple[SecurityAnnotation, ...] = ()


@dataclass(frozen=True)
class OperationDescriptor:
    """One request-routable handler of a view class."""

    group_name: str
    name: str
    annotations: Tuple[SecurityAnnotation, ...] = ()

    @property
    def qualified_name(self) -> str:
        return f"{self.group_name}:{self.name}"

    @property
    def is_annotated(self) -> bool:
        return bool(self.annotations)


def group_name(view_cls) -> str:
    return f"{view_cls.__module__}.{view_cls.__qualname__}"


def operation_name(view, request) -> str:
    """
    Name of the operation a live request is dispatched to.

    ViewSets route by action; plain API views by HTTP method. Django answers
    HEAD with the ``get`` handler when the view has no ``head`` of its own.
    """
    action = getattr(view, 'action', None)
    if action:
        return action
    method = request.method.lower()
    if method == 'head' and not hasattr(type(view), 'head'):
        return 'get'
    return method
