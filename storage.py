from typing import Dict, Optional
from filters import apply_filters
from models import LedgerSnapshot, ReportContext, Workspace


class InMemoryStorage:
    def __init__(self):
        self.workspaces: Dict[str, Workspace] = {}

    def create_workspace(self, workspace: Workspace) -> Workspace:
        self.workspaces[workspace.id] = workspace
        return workspace

    def get_workspace(self, workspace_id: str) -> Optional[Workspace]:
        return self.workspaces.get(workspace_id)

    def update_workspace(self, workspace: Workspace) -> Workspace:
        self.workspaces[workspace.id] = workspace
        return workspace

    def load_snapshot(self, context: ReportContext) -> Optional[LedgerSnapshot]:
        workspace = self.get_workspace(context.workspace_id)
        if workspace is None:
            return None

        return LedgerSnapshot(
            participants=list(workspace.participants),
            categories=list(workspace.categories),
            expenses=apply_filters(workspace.expenses, context.filters)
        )


storage = InMemoryStorage()
