"""
Exceptions raised while resolving endpoint security policies.
"""
from django.core.exceptions import ImproperlyConfigured


class SecurityMisconfigured(ImproperlyConfigured):
    """
    Base class for endpoint security configuration errors. A request that
    hits one is refused rather than served unprotected.
    """


class AmbiguousAnnotation(SecurityMisconfigured):
    """
    Raised when more than one security annotation is declared on the same
    view class or handler.

    The metadata author has to remove all but one of them; the resolver never
    picks one by priority.
    """

    def __init__(self, placement, annotations):
        self.placement = placement
        self.annotations = tuple(annotations)
        super().__init__(
            f"Duplicate security annotations found on {placement}. "
            f"Expected at most 1 annotation, found: {list(self.annotations)}"
        )


class IdentityProviderNotConfigured(SecurityMisconfigured):
    """Raised when RBAC['IDENTITY_PROVIDER'] cannot be loaded."""
