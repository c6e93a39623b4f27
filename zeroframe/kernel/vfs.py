# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Virtual filesystem - a read-only view over the active tenant's datasets
plus a handful of devices.

Layout::

    /
    ├── DEV/datasets/<name>
    ├── UAT/datasets/<name>
    ├── PROD/datasets/<name>
    └── dev/{time,random,null,logger}
"""

from __future__ import annotations

import random
from typing import Optional

from zeroframe.kernel.store import KernelStore
from zeroframe.kernel.types import VfsNode, VfsNodeType, Workspace

WORKSPACE_DIRS = [f"/{ws.value}" for ws in Workspace]
DEVICES = ["/dev/time", "/dev/random", "/dev/null", "/dev/logger"]
LOGGER_DEVICE_TEXT = "Write-only device (simulated logger)."


class VirtualFileSystem:
    def __init__(self, store: KernelStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def resolve(self, path: str, org_id: str) -> Optional[VfsNode]:
        """Resolve a path to a node, or None if nothing lives there"""
        path = path or "/"

        if path == "/":
            return VfsNode(path="/", type=VfsNodeType.DIR, children=WORKSPACE_DIRS + ["/dev"])

        if path in WORKSPACE_DIRS:
            return VfsNode(path=path, type=VfsNodeType.DIR, children=[f"{path}/datasets"])

        if path == "/dev":
            return VfsNode(path=path, type=VfsNodeType.DIR, children=list(DEVICES))

        if path in DEVICES:
            return VfsNode(path=path, type=VfsNodeType.DEVICE, content=self._read_device(path))

        parts = [p for p in path.split("/") if p]
        if len(parts) < 2 or parts[1] != "datasets" or f"/{parts[0]}" not in WORKSPACE_DIRS:
            return None
        workspace = Workspace(parts[0])
        datasets = [
            d for d in self.store.datasets_for(org_id) if d.workspace == workspace
        ]

        if len(parts) == 2:
            return VfsNode(
                path=path,
                type=VfsNodeType.DIR,
                children=[f"/{workspace.value}/datasets/{d.name}" for d in datasets],
            )

        if len(parts) == 3:
            name = parts[2]
            dataset = next((d for d in datasets if d.name == name), None)
            if dataset is None:
                return None
            return VfsNode(
                path=path,
                type=VfsNodeType.FILE,
                content=(
                    f"Dataset {name} ({dataset.type.value}) in workspace {workspace.value}. "
                    f"Records: {dataset.record_count or 0}"
                ),
            )

        return None

    def read_file(self, path: str, org_id: str) -> Optional[str]:
        """Content of a node; directories read as their children, one per line"""
        node = self.resolve(path, org_id)
        if node is None:
            return None
        if node.type == VfsNodeType.DIR:
            return "\n".join(node.children or [])
        return node.content or ""

    def _read_device(self, path: str) -> str:
        if path == "/dev/time":
            return self.store.now_iso()
        if path == "/dev/random":
            return str(self.rng.randrange(100000))
        if path == "/dev/null":
            return ""
        return LOGGER_DEVICE_TEXT
