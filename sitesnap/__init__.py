"""Archive every in-scope page of a site: text, markup, screenshots, and media."""
