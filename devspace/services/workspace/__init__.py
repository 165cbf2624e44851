from devspace.services.workspace.provisioner import (
    DeferredWorkspaceProvisioner,
    GitWorkspaceProvisioner,
    WorkspaceProvisioner,
)

__all__ = [
    "DeferredWorkspaceProvisioner",
    "GitWorkspaceProvisioner",
    "WorkspaceProvisioner",
]
