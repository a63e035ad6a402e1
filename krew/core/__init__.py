"""Install/uninstall lifecycle for kubectl plugins."""
