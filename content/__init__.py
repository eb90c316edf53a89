"""
Content app for the brokerage platform.

Editable public-site content (banners, about sections, settings) and the
contact form inbox.
"""
