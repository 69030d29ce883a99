from pagebuilder.extensions import db
from .base import BaseModel


class PageVersion(BaseModel):
    __tablename__ = "page_versions"

    page_id = db.Column(
        db.String(36),
        db.ForeignKey("pages.id"),
        nullable=False
    )

    version = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False)
    # delete | rollback

    # node whose removal (or restoration) produced this version
    node_id = db.Column(db.String(36), nullable=True)

    snapshot = db.Column(db.JSON, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("page_id", "version", name="uq_page_version"),
        db.Index("idx_page_version_page", "page_id"),
    )
