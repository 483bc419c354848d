"""
SysCheck

Preflight validation toolkit for Kubernetes platform deployments on
AKS, EKS and on-prem K3s.
"""

__version__ = "1.0.0"
