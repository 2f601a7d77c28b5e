"""
OAP Bootstrap - Server Starter

Process entry around the module engine: loads the application configuration,
runs the boot, prints the booting parameters and maps the outcome to an
exit code.
"""

__version__ = "1.0.0"
