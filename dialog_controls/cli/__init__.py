"""dialog-controls command line tools."""
