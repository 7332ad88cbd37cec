# src/garagehub/__init__.py
"""
GarageHub: backend маркетплейса автосервисов.
Клиенты ищут гаражи поблизости и оставляют отзывы, гаражи ведут каталог услуг.
"""

__version__ = "1.0.0"
