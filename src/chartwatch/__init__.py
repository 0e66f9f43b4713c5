# ABOUTME: chartwatch package initialization
# ABOUTME: Exposes version information for the reporting job

"""
chartwatch - report the Helm charts installed in a Kubernetes cluster.

chartwatch runs once (typically from a CronJob), discovers every chart that is
currently deployed in the cluster it runs in, and PUTs a JSON snapshot to a
collection endpoint.

Charts are found along two independent paths:

1. HELM RELEASE SECRETS: Helm 3 stores each release revision in a Secret
   labeled owner=helm. Those are decoded (base64 -> gzip -> JSON) and the
   revisions with status "deployed" are reported.

2. ARGOCD-MANAGED DEPLOYMENTS: charts applied by ArgoCD leave no Helm Secret.
   Deployments carrying ArgoCD's tracking label are reported by name, with the
   chart version read from their labels.

PACKAGE STRUCTURE:
------------------
chartwatch/
├── __init__.py      <- This file: version information
├── __main__.py      <- `python -m chartwatch`
├── main.py          <- Entry point: run() and main()
├── config.py        <- Environment configuration (pydantic-settings)
├── models.py        <- ChartRecord / ClusterSnapshot and the wire JSON
├── codec.py         <- Helm release payload decoding
├── scanner.py       <- Helm Secret discovery path
├── argocd.py        <- ArgoCD label discovery path
├── snapshot.py      <- Cluster identity and snapshot assembly
└── utils/
    ├── kube.py      <- Kubernetes API access
    ├── delivery.py  <- HTTP delivery of the snapshot
    └── logging.py   <- Structured logging with run ids
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
