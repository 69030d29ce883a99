import copy

from pagebuilder.normalizers.page import normalize_page, parse_page


def snapshot_page(page):
    """Serialized, self-contained copy of a page tree."""
    return copy.deepcopy(normalize_page(page))


def restore_page(snapshot):
    """Rebuild a domain page from ``snapshot_page`` output."""
    return parse_page(copy.deepcopy(snapshot))


def next_version(page_id):
    from pagebuilder.models.page_version import PageVersion

    last = (
        PageVersion.query
        .filter_by(page_id=page_id)
        .order_by(PageVersion.version.desc())
        .first()
    )
    return (last.version + 1) if last else 1
