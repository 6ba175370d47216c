"""
Security annotations for DRF views.

The four recognized markers can be placed on a view class or on a single
handler (``get``/``post`` on an APIView, ``list``/``create``/... or an
``@action`` on a ViewSet):

    @authenticated
    class OrderViewSet(viewsets.ViewSet):

        @permit_all
        def list(self, request):
            ...

        @roles_allowed('admin', 'finance')
        def destroy(self, request, pk=None):
            ...

A handler-level marker always wins over the class-level one. Declaring more
than one marker on the same class or handler is a configuration error that is
reported when the view is registered (see apps.rbac.resolver).
"""
from dataclasses import dataclass
from typing import Tuple

SECURITY_ANNOTATIONS_ATTR = '__security_annotations__'


class SecurityAnnotation:
    """Base class of the closed set of recognized security markers."""

    def __repr__(self):
        return f"@{self.__class__.__name__}"


@dataclass(frozen=True, repr=False)
class DenyAll(SecurityAnnotation):
    pass


@dataclass(frozen=True, repr=False)
class PermitAll(SecurityAnnotation):
    pass


@dataclass(frozen=True, repr=False)
class Authenticated(SecurityAnnotation):
    pass


@dataclass(frozen=True, repr=False)
class RolesAllowed(SecurityAnnotation):
    roles: Tuple[str, ...] = ()

    def __repr__(self):
        return f"@RolesAllowed({list(self.roles)})"


SECURITY_ANNOTATION_TYPES = (DenyAll, PermitAll, RolesAllowed, Authenticated)


def declared_annotations(obj) -> tuple:
    """
    Return the security annotations declared directly on ``obj``.

    For classes only the class's own ``__dict__`` is consulted; for functions
    the attribute set by the decorators below.
    """
    if isinstance(obj, type):
        annotations = obj.__dict__.get(SECURITY_ANNOTATIONS_ATTR, ())
    else:
        annotations = getattr(obj, SECURITY_ANNOTATIONS_ATTR, ())
    return tuple(a for a in annotations if isinstance(a, SECURITY_ANNOTATION_TYPES))


def annotate(obj, annotation: SecurityAnnotation):
    """
    Attach ``annotation`` to a view class or handler and return it unchanged.

    Equal annotations are recorded once; distinct ones accumulate so that the
    resolver can reject the ambiguity instead of silently picking one.
    """
    existing = declared_annotations(obj)
    if annotation not in existing:
        setattr(obj, SECURITY_ANNOTATIONS_ATTR, existing + (annotation,))
    return obj


def deny_all(view_or_method):
    """Reject every request to the decorated view or handler."""
    return annotate(view_or_method, DenyAll())


def permit_all(view_or_method):
    """Allow every request, without looking at the caller's identity."""
    return annotate(view_or_method, PermitAll())


def authenticated(view_or_method):
    """Allow any authenticated caller."""
    return annotate(view_or_method, Authenticated())


def roles_allowed(*roles):
    """
    Allow authenticated callers holding at least one of ``roles``.

    Role names are matched exactly (case-sensitive). ``@roles_allowed()`` with
    no roles admits nobody.

    Usage:
        @roles_allowed('admin', 'support')
        def get(self, request):
            pass
    """
    if len(roles) == 1 and callable(roles[0]) and not isinstance(roles[0], str):
        raise TypeError("roles_allowed must be called with role names: @roles_allowed('admin')")

    ordered = tuple(dict.fromkeys(str(role) for role in roles))

    def decorator(view_or_method):
        return annotate(view_or_method, RolesAllowed(ordered))

    return decorator
