"""Console front end: menus, rendering and user config."""
