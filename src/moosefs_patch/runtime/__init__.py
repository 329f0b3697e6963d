"""Runtime services shared by the patcher and the workflow."""
