"""
Endpoint security policy resolution.

Given one operation, the view class it belongs to and the other operations
of that class, decide the single policy that applies:

1. an annotation on the operation wins;
2. otherwise the annotation on the view class;
3. otherwise, when default-deny is enabled and any operation of the class
   (this one included) declares an annotation, the operation is denied;
4. otherwise no constraint is installed.

More than one annotation on the operation, or on the class, raises
AmbiguousAnnotation. Resolution is a pure function of its inputs.
"""
import logging
from typing import Iterable, Optional

from apps.rbac.annotations import Authenticated, DenyAll, PermitAll, RolesAllowed, SecurityAnnotation
from apps.rbac.conf import GlobalConfig, get_global_config
from apps.rbac.descriptors import GroupDescriptor, OperationDescriptor
from apps.rbac.discovery import ViewMetadataDiscovery
from apps.rbac.exceptions import AmbiguousAnnotation
from apps.rbac.policies import (
    ALLOW_ALL, DENY, REQUIRE_AUTHENTICATED, RequireRoles, ResolvedPolicy, describe,
)

logger = logging.getLogger(__name__)


def policy_for(annotation: SecurityAnnotation) -> ResolvedPolicy:
    """Map a security annotation to the policy it declares."""
    if isinstance(annotation, DenyAll):
        return DENY
    if isinstance(annotation, RolesAllowed):
        return RequireRoles(annotation.roles)
    if isinstance(annotation, Authenticated):
        return REQUIRE_AUTHENTICATED
    if isinstance(annotation, PermitAll):
        return ALLOW_ALL
    raise TypeError(f"Unsupported security annotation: {annotation!r}")


def single_annotation(annotations, placement) -> Optional[SecurityAnnotation]:
    if not annotations:
        return None
    if len(annotations) == 1:
        return annotations[0]
    raise AmbiguousAnnotation(placement, annotations)


def resolve(
    operation: OperationDescriptor,
    group: GroupDescriptor,
    group_operations: Iterable[OperationDescriptor],
    config: GlobalConfig,
) -> Optional[ResolvedPolicy]:
    """
    Resolve the policy of ``operation``.

    Only ``operation`` and ``group`` are validated for ambiguity; the other
    operations of the group are merely probed for having any annotation.

    Returns:
        ResolvedPolicy, or None when no constraint applies

    Raises:
        AmbiguousAnnotation: more than one annotation on the operation or group
    """
    annotation = single_annotation(operation.annotations, operation.qualified_name)
    if annotation is None:
        annotation = single_annotation(group.annotations, group.name)

    if annotation is not None:
        return policy_for(annotation)

    if config.deny_non_annotated_by_default and any(op.is_annotated for op in group_operations):
        return DENY

    return None


class PolicyResolver:
    """
    Resolves policies straight from DRF view classes.

    Bundles a metadata discovery with the GlobalConfig; the config is loaded
    from settings when not given.
    """

    def __init__(self, discovery=None, config=None):
        self.discovery = discovery or ViewMetadataDiscovery()
        self.config = config if config is not None else get_global_config()

    def resolve_operation(self, view_cls, name, group_operations=None) -> Optional[ResolvedPolicy]:
        if group_operations is None:
            group_operations = self.discovery.invocable_operations(view_cls)
        operation = self.discovery.describe_operation(view_cls, name)
        group = self.discovery.describe_group(view_cls)

        policy = resolve(operation, group, group_operations, self.config)

        logger.debug(
            f"Resolved {operation.qualified_name} -> {describe(policy)}",
            extra={
                'view': group.name,
                'operation': name,
                'policy': describe(policy),
            }
        )
        return policy

    def resolve_view(self, view_cls) -> dict:
        """Resolve every invocable operation of ``view_cls``."""
        group_operations = self.discovery.invocable_operations(view_cls)
        return {
            operation.name: self.resolve_operation(view_cls, operation.name, group_operations)
            for operation in group_operations
        }
