from __future__ import annotations

import logging
from dataclasses import dataclass, field

import yaml

log = logging.getLogger(__name__)

DEFAULT_EXPORT_OPTIONS = "rw,sync,no_root_squash,no_subtree_check"
DEFAULT_SETTLE_DELAY = 2.0


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Export:
    path: str
    clients: str = "*"
    options: str = DEFAULT_EXPORT_OPTIONS
    owner: str = "nobody:nobody"
    mode: str = "755"


@dataclass(frozen=True)
class ProxyRoute:
    path: str
    port: int | None = None
    target_path: str = "/"


@dataclass(frozen=True)
class Subdomain:
    name: str
    port: int


DEFAULT_EXPORTS = (
    Export("/nfs/shared"),
    Export("/srv/nfs_share"),
)

DEFAULT_ROUTES = (
    ProxyRoute("/prom", 9090),
    ProxyRoute("/alert", 9093),
    ProxyRoute("/stats", 8404),
    ProxyRoute("/nfs", None, "/nfs"),
    ProxyRoute("/portainer", 9000),
    ProxyRoute("/", None),
)

DEFAULT_SUBDOMAINS = (Subdomain("nsight", 3000),)


@dataclass(frozen=True)
class NfsSettings:
    services: tuple[str, ...] = ("rpcbind", "nfs-server")
    exports: tuple[Export, ...] = DEFAULT_EXPORTS
    client_hint: str = "192.168.0.240"
    test_file: str = "test.txt"


@dataclass(frozen=True)
class DnsSettings:
    domain: str = "idctech.com"
    target_server: str = "192.168.0.240"
    dns_server_ip: str = "192.168.0.240"
    services: tuple[str, ...] = ("named", "httpd")
    routes: tuple[ProxyRoute, ...] = DEFAULT_ROUTES
    subdomains: tuple[Subdomain, ...] = DEFAULT_SUBDOMAINS
    named_conf: str = "/etc/named.conf"
    zone_dir: str = "/var/named"
    vhost_dir: str = "/etc/httpd/conf.d"
    web_root: str = "/var/www/html"


@dataclass(frozen=True)
class Settings:
    nfs: NfsSettings = field(default_factory=NfsSettings)
    dns: DnsSettings = field(default_factory=DnsSettings)
    settle_delay: float = DEFAULT_SETTLE_DELAY
    strict: bool = False


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def _names(opts: dict, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = opts.get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of unit names")
    return tuple(value)


def _entries(opts: dict, key: str, cls, default: tuple):
    value = opts.get(key)
    if value is None:
        return default
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list")
    entries = []
    for item in value:
        if not isinstance(item, dict):
            raise ConfigError(f"entries of '{key}' must be mappings, got {item!r}")
        try:
            entries.append(cls(**item))
        except TypeError as exc:
            raise ConfigError(f"invalid entry in '{key}': {exc}") from exc
    return tuple(entries)


def parse_settings(data: dict | None) -> Settings:
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("settings file must contain a mapping")

    nfs_opts = _section(data, "nfs")
    dns_opts = _section(data, "dns")
    nfs_defaults = NfsSettings()
    dns_defaults = DnsSettings()

    nfs = NfsSettings(
        services=_names(nfs_opts, "services", nfs_defaults.services),
        exports=_entries(nfs_opts, "exports", Export, nfs_defaults.exports),
        client_hint=str(nfs_opts.get("client_hint", nfs_defaults.client_hint)),
        test_file=str(nfs_opts.get("test_file", nfs_defaults.test_file)),
    )
    if not nfs.exports:
        raise ConfigError("'nfs.exports' must list at least one export")

    dns = DnsSettings(
        domain=str(dns_opts.get("domain", dns_defaults.domain)),
        target_server=str(dns_opts.get("target_server", dns_defaults.target_server)),
        dns_server_ip=str(dns_opts.get("dns_server_ip", dns_defaults.dns_server_ip)),
        services=_names(dns_opts, "services", dns_defaults.services),
        routes=_entries(dns_opts, "routes", ProxyRoute, dns_defaults.routes),
        subdomains=_entries(dns_opts, "subdomains", Subdomain, dns_defaults.subdomains),
        named_conf=str(dns_opts.get("named_conf", dns_defaults.named_conf)),
        zone_dir=str(dns_opts.get("zone_dir", dns_defaults.zone_dir)),
        vhost_dir=str(dns_opts.get("vhost_dir", dns_defaults.vhost_dir)),
        web_root=str(dns_opts.get("web_root", dns_defaults.web_root)),
    )
    if len(dns.target_server.split(".")) != 4:
        raise ConfigError(f"'dns.target_server' must be an IPv4 address, got {dns.target_server!r}")

    try:
        settle_delay = float(data.get("settle_delay", DEFAULT_SETTLE_DELAY))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'settle_delay' must be a number: {exc}") from exc

    strict = data.get("strict", False)
    if not isinstance(strict, bool):
        raise ConfigError(f"'strict' must be true or false, got {strict!r}")

    return Settings(
        nfs=nfs,
        dns=dns,
        settle_delay=settle_delay,
        strict=strict,
    )


def load_config(path: str | None) -> Settings:
    if path is None:
        return Settings()

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse {path}: {exc}") from exc

    settings = parse_settings(data)
    log.info("Loaded settings from %s", path)
    return settings
