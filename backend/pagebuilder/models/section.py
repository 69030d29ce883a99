from pagebuilder.extensions import db
from .base import BaseModel


class Section(BaseModel):
    __tablename__ = "sections"

    page_id = db.Column(db.String(36), db.ForeignKey("pages.id"), nullable=False)
    name = db.Column(db.String(200), nullable=False, default="")
    section_type = db.Column(db.String(100), nullable=False, default="content")  # hero, about, roster
    # structured | cloned; NULL for legacy rows that carry styles.cloneMode
    kind = db.Column(db.String(20), nullable=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    styles = db.Column(db.JSON, default=dict)

    # Cloned sections only
    html = db.Column(db.Text, nullable=True)
    css = db.Column(db.Text, nullable=True)
    js = db.Column(db.Text, nullable=True)

    page = db.relationship("Page", back_populates="sections")
    blocks = db.relationship(
        "Block",
        back_populates="section",
        order_by="Block.order_index",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_section_page_order", "page_id", "order_index"),
    )
