"""Инструменты командной строки."""
