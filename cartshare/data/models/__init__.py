#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from cartshare.data.models.shareable_cart import ShareableCartModel

__all__ = ["ShareableCartModel"]
