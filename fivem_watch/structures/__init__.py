from fivem_watch.structures.player import Player, parse_identifiers
from fivem_watch.structures.server import ServerInfo, max_clients_from

__all__ = ["Player", "ServerInfo", "max_clients_from", "parse_identifiers"]
