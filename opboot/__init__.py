"""Vault operator bootstrap.

Brings the operator process from "just started" to "exclusively reconciling":
 - watch-scope resolution (single namespace or whole cluster)
 - liveness/readiness probes served for the whole process lifetime
 - leader-for-life election before any reconciliation
 - ordered manager construction, scheme and controller registration
 - publication of the metrics Service

Every failure past leader election is fatal; the platform restarts the process.
"""

__version__ = "0.1.0"
