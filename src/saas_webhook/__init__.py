"""Azure Marketplace SaaS webhook gate.

Authenticates marketplace webhook calls and reconciles each notification
against the Marketplace operation-status API before accepting it.
"""

__version__ = "0.1.0"
