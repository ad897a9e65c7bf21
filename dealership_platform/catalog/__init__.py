"""Store operations for the marketplace resources (cars, inquiries, bookmarks)."""
