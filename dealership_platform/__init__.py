"""Car Dealership Marketplace - Backend.

The backend owns every rule the browser used to enforce on its own:
- Identity (signup/login) and the admin vs regular user role.
- Vehicle listings, customer inquiries and bookmarks.
- Listing images (object storage).

The frontend is a static site: it only displays data and calls the JSON API.

See SPEC_FULL.md for the full behaviour.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
