from pagebuilder.extensions import db
from .base import BaseModel


class Block(BaseModel):
    __tablename__ = "blocks"

    section_id = db.Column(db.String(36), db.ForeignKey("sections.id"), nullable=False)
    block_type = db.Column(db.String(100), nullable=False)  # heading, image, team-roster
    order_index = db.Column(db.Integer, nullable=False, default=0)
    content = db.Column(db.JSON, default=dict)
    styles = db.Column(db.JSON, default=dict)
    visibility = db.Column(db.JSON, default=dict)

    # Relationship to parent Section
    section = db.relationship("Section", back_populates="blocks")

    __table_args__ = (
        db.Index("idx_block_section_order", "section_id", "order_index"),
    )
