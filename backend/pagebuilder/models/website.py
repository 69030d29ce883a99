from pagebuilder.extensions import db
from .base import BaseModel


class Website(BaseModel):
    __tablename__ = "websites"

    is_published = db.Column(db.Boolean, default=False, nullable=False)
    domain = db.Column(db.String(255), nullable=True, unique=True)
    subdomain = db.Column(db.String(100), nullable=True, unique=True, index=True)
    theme_id = db.Column(db.String(36), nullable=True)

    pages = db.relationship(
        "Page",
        back_populates="website",
        order_by="Page.order_index",
        cascade="all, delete-orphan"
    )
