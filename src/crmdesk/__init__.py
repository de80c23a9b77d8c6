"""crmdesk: CRM entity storage with swappable mock and remote backends."""

__version__ = "0.1.0"
