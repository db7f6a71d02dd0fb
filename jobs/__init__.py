"""Jobs de línea de comandos."""
