"""
Target resolution.

Turns raw target descriptors into ClusterTarget objects before anything
touches the network. Descriptor formats (comma separated, trailing fields
optional):

    url[,cluster-name]
    kubeconfig[,cluster-name[,namespace[,service-name]]]

A descriptor starting with http:// or https:// (any case) is reached
directly; anything else must be an existing kubeconfig file and is reached
through a port-forwarding tunnel.
"""

import logging
import re
from pathlib import Path

from pulsar_survey.errors import ConfigError, UnknownOriginError
from pulsar_survey.types import ClusterTarget, TargetKind

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)
ADMIN_PATH = "/admin/v2"


def admin_base_url(url: str) -> str:
    """
    Return the admin v2 base for a broker or admin URL.

    "http://broker:8080" -> "http://broker:8080/admin/v2"
    "http://broker:8080/admin/v2/" -> "http://broker:8080/admin/v2"
    """
    url = url.rstrip("/")
    if url.endswith(ADMIN_PATH):
        return url
    return url + ADMIN_PATH


def _field(fields: list[str], index: int, default: str = "") -> str:
    if len(fields) > index and fields[index]:
        return fields[index]
    return default


def parse_target(
    descriptor: str,
    *,
    namespace: str = "",
    service_name: str = "",
) -> ClusterTarget:
    """
    Classify and parse a single target descriptor.

    Args:
        descriptor: Raw descriptor string.
        namespace: Default namespace for tunneled targets.
        service_name: Default broker service for tunneled targets.

    Returns:
        A DIRECT target with resolved_url set, or a TUNNELED target whose
        resolved_url is filled in once its tunnel is open.

    Raises:
        UnknownOriginError: If the descriptor is neither a URL nor an
            existing regular file.
    """
    fields = [f.strip() for f in descriptor.split(",")]
    origin = fields[0]

    if URL_PATTERN.match(origin):
        return ClusterTarget(
            origin=origin,
            kind=TargetKind.DIRECT,
            logical_name=_field(fields, 1),
            resolved_url=admin_base_url(origin),
        )

    if origin and Path(origin).expanduser().is_file():
        return ClusterTarget(
            origin=str(Path(origin).expanduser()),
            kind=TargetKind.TUNNELED,
            logical_name=_field(fields, 1),
            namespace=_field(fields, 2, namespace),
            service_name=_field(fields, 3, service_name),
        )

    logger.error(
        "I don't know what '%s' is. I expected a URL or a kubeconfig file!",
        descriptor,
    )
    raise UnknownOriginError(descriptor)


def resolve_targets(
    descriptors: list[str],
    *,
    namespace: str = "",
    service_name: str = "",
) -> list[ClusterTarget]:
    """
    Resolve every descriptor, in order.

    Raises:
        ConfigError: If there are no descriptors or two targets share a
            cluster name.
        UnknownOriginError: On the first unresolvable descriptor.
    """
    if not descriptors:
        raise ConfigError(
            "No targets specified. Pass URLs or kubeconfig files, "
            "or set KUBECONFIG to point to your kubeconfig files."
        )

    targets = [
        parse_target(d, namespace=namespace, service_name=service_name)
        for d in descriptors
    ]

    seen: set[str] = set()
    for target in targets:
        if not target.logical_name:
            continue
        if target.logical_name in seen:
            raise ConfigError(f"Cluster name '{target.logical_name}' is used twice")
        seen.add(target.logical_name)

    for target in targets:
        logger.debug("Target %s: %s via %s", target.label, target.kind.value, target.origin)

    return targets


def targets_from_env(value: str | None) -> list[str]:
    """Split a KUBECONFIG-style value into descriptors, dropping blanks."""
    if not value:
        return []
    return [part for part in value.split(":") if part.strip()]
