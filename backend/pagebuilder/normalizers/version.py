def normalize_version(version, include_snapshot=False):
    """Works for both PageVersion rows and in-memory Snapshot records."""
    data = {
        "version": version.version,
        "page_id": version.page_id,
        "status": version.status,
        "node_id": version.node_id,
        "created_at": version.created_at.isoformat() if version.created_at else None,
    }

    if include_snapshot:
        data["snapshot"] = version.snapshot

    return data
