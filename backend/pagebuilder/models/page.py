from pagebuilder.extensions import db
from .base import BaseModel


class Page(BaseModel):
    __tablename__ = 'pages'

    website_id = db.Column(db.String(36), db.ForeignKey("websites.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, index=True)
    is_home = db.Column(db.Boolean, default=False, nullable=False)
    is_published = db.Column(db.Boolean, default=False, nullable=False)
    order_index = db.Column(db.Integer, default=0, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("website_id", "slug", name="uq_page_slug_per_website"),
    )

    website = db.relationship("Website", back_populates="pages")

    # Relationship to Sections (ordered, cascade deletes)
    sections = db.relationship(
        "Section",
        back_populates="page",
        order_by="Section.order_index",
        cascade="all, delete-orphan"
    )
