from __future__ import annotations


class BootstrapError(Exception):
    """Base class for failures raised while bringing the operator up."""

    fatal = True


class ConfigAcquisitionError(BootstrapError):
    pass


class NamespaceDiscoveryError(BootstrapError):
    # Degrades to cluster-wide scope.
    fatal = False


class LeadershipAcquisitionError(BootstrapError):
    pass


class ManagerConstructionError(BootstrapError):
    pass


class SchemeRegistrationError(BootstrapError):
    pass


class ControllerRegistrationError(BootstrapError):
    pass


class MetricsPublicationError(BootstrapError):
    pass


class ProbeBindError(BootstrapError):
    # Logged; bootstrap carries on without probes.
    fatal = False


class RunLoopError(BootstrapError):
    pass
