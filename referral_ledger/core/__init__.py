"""Ядро приложения: общие исключения."""
