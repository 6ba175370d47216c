"""
Security metadata discovery for DRF views.

Turns view classes into the typed descriptors the resolver works on, and
tells which handlers of a view class are request-routable.
"""
import logging

from rest_framework.views import APIView
from rest_framework.viewsets import ViewSetMixin

from apps.rbac.annotations import declared_annotations
from apps.rbac.descriptors import GroupDescriptor, OperationDescriptor, group_name

logger = logging.getLogger(__name__)

VIEWSET_ACTIONS = ('list', 'create', 'retrieve', 'update', 'partial_update', 'destroy')


def is_viewset(view_cls) -> bool:
    return isinstance(view_cls, type) and issubclass(view_cls, ViewSetMixin)


class ViewMetadataDiscovery:
    """
    Reads security annotations off DRF view classes.

    Handlers are looked up through the class, so inherited handlers count
    and keep the annotations they were declared with. The class-level
    annotations come from the nearest class in the MRO that declares any.
    """

    def group_annotations(self, view_cls) -> tuple:
        for klass in view_cls.__mro__:
            annotations = declared_annotations(klass)
            if annotations:
                return annotations
        return ()

    def operation_annotations(self, view_cls, name) -> tuple:
        handler = getattr(view_cls, name, None)
        if handler is None:
            return ()
        return declared_annotations(handler)

    def describe_group(self, view_cls) -> GroupDescriptor:
        return GroupDescriptor(
            name=group_name(view_cls),
            annotations=self.group_annotations(view_cls),
        )

    def describe_operation(self, view_cls, name) -> OperationDescriptor:
        return OperationDescriptor(
            group_name=group_name(view_cls),
            name=name,
            annotations=self.operation_annotations(view_cls, name),
        )

    def invocable_operation_names(self, view_cls) -> list:
        """Names of the request-routable handlers of ``view_cls``, in a stable order."""
        if is_viewset(view_cls):
            names = [action for action in VIEWSET_ACTIONS if callable(getattr(view_cls, action, None))]
            for extra_action in view_cls.get_extra_actions():
                names.append(extra_action.__name__)
                # @action(...) + @<action>.mapping.<method> route to other handlers
                names.extend(getattr(extra_action, 'mapping', {}).values())
        else:
            names = [
                method for method in view_cls.http_method_names
                if callable(getattr(view_cls, method, None))
                and not self._is_builtin_options(view_cls, method)
            ]
        return list(dict.fromkeys(names))

    def invocable_operations(self, view_cls) -> list:
        return [self.describe_operation(view_cls, name) for name in self.invocable_operation_names(view_cls)]

    def _is_builtin_options(self, view_cls, method):
        return method == 'options' and getattr(view_cls, 'options') is APIView.options

