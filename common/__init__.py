"""Configuración y logging compartidos por la API y los jobs."""
