"""Interfaz de línea de comandos de cdp-http."""
