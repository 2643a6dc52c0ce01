from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from hostctl import templates
from hostctl.config import DnsSettings, NfsSettings, Settings
from hostctl.models import TemplateVars


@dataclass(frozen=True)
class ConfigTemplate:
    path: str
    render: Callable[[TemplateVars], str]
    description: str
    owner: str | None = None
    mode: str | None = None
    backup_existing: bool = False


@dataclass(frozen=True)
class Directory:
    path: str
    owner: str | None = None
    mode: str | None = None


@dataclass(frozen=True)
class Package:
    name: str
    install: tuple[str, ...]


@dataclass(frozen=True)
class Command:
    label: str
    argv: tuple[str, ...]


@dataclass(frozen=True)
class Probe:
    title: str
    argv: tuple[str, ...]
    fallback: str
    max_lines: int | None = None


@dataclass(frozen=True)
class Archive:
    path: str
    placeholder: str


@dataclass(frozen=True)
class Profile:
    name: str
    title: str
    services: tuple[str, ...]
    domain: str = ""
    target_server: str = ""
    dns_server_ip: str = ""
    templates: tuple[ConfigTemplate, ...] = ()
    directories: tuple[Directory, ...] = ()
    packages: tuple[Package, ...] = ()
    pre_down: tuple[Command, ...] = ()
    post_up: tuple[Command, ...] = ()
    archives: tuple[Archive, ...] = ()
    summary_probes: tuple[Probe, ...] = ()
    status_probes: tuple[Probe, ...] = ()
    status_files: tuple[str, ...] = ()
    instructions_title: str = ""
    instructions: Callable[[TemplateVars], str] | None = None
    usage_extra: tuple[str, ...] = ()


def nfs_profile(settings: NfsSettings) -> Profile:
    exports = settings.exports
    share = exports[0].path
    test_file = f"{share}/{settings.test_file}"
    exportfs_v = Probe("Current exports:", ("exportfs", "-v"), "No exports configured")

    return Profile(
        name="nfs",
        title="NFS Server",
        services=settings.services,
        directories=tuple(Directory(e.path, e.owner, e.mode) for e in exports),
        templates=(
            ConfigTemplate(
                path=test_file,
                render=lambda v: templates.render_nfs_test_file(v, share),
                description="test file",
                owner=exports[0].owner,
                mode="644",
            ),
            ConfigTemplate(
                path="/etc/exports",
                render=lambda v: templates.render_exports(exports),
                description="NFS exports",
            ),
        ),
        post_up=(Command("Reloading NFS exports", ("exportfs", "-ra")),),
        pre_down=(Command("Unexporting all NFS shares", ("exportfs", "-ua")),),
        archives=(Archive("/etc/exports", templates.EXPORTS_DISABLED),),
        summary_probes=(exportfs_v,),
        status_probes=(
            exportfs_v,
            Probe(
                "RPC services:",
                ("rpcinfo", "-p", "localhost"),
                "RPC services not available",
                max_lines=5,
            ),
        ),
        instructions_title="📋 Client Mount Commands:",
        instructions=lambda v: templates.render_nfs_instructions(
            v, exports, settings.client_hint, settings.test_file,
        ),
    )


def dns_profile(settings: DnsSettings) -> Profile:
    domain = settings.domain
    reverse, _ = templates.reverse_zone(settings.target_server)
    zone_file = f"{settings.zone_dir}/{domain}.zone"
    reverse_file = f"{settings.zone_dir}/{reverse}.zone"
    docroot = f"{settings.web_root}/{domain}"
    vhost_file = f"{settings.vhost_dir}/{domain}.conf"

    return Profile(
        name="dns",
        title="DNS Server",
        services=settings.services,
        domain=domain,
        target_server=settings.target_server,
        dns_server_ip=settings.dns_server_ip,
        packages=(
            Package("bind", ("bind", "bind-utils")),
            Package("httpd", ("httpd",)),
        ),
        directories=(Directory(docroot),),
        templates=(
            ConfigTemplate(
                path=settings.named_conf,
                render=lambda v: templates.render_named_conf(v, settings.zone_dir),
                description="named.conf",
                backup_existing=True,
            ),
            ConfigTemplate(
                path=zone_file,
                render=lambda v: templates.render_forward_zone(v, settings.subdomains),
                description=f"DNS zone file for {domain}",
                owner="named:named",
                mode="644",
            ),
            ConfigTemplate(
                path=reverse_file,
                render=templates.render_reverse_zone,
                description="reverse DNS zone",
                owner="named:named",
                mode="644",
            ),
            ConfigTemplate(
                path=vhost_file,
                render=lambda v: templates.render_vhost(
                    v, settings.routes, settings.subdomains, settings.web_root,
                ),
                description="Apache virtual host",
            ),
            ConfigTemplate(
                path=f"{docroot}/index.html",
                render=templates.render_index_html,
                description="redirect index page",
            ),
        ),
        post_up=(
            Command("Checking named configuration", ("named-checkconf",)),
            Command(f"Checking zone {domain}", ("named-checkzone", domain, zone_file)),
        ),
        archives=(Archive(vhost_file, templates.VHOST_DISABLED),),
        status_files=(settings.named_conf, zone_file),
        status_probes=(
            Probe(
                "Test DNS resolution:",
                ("dig", "+short", "@localhost", domain),
                "DNS resolution failed",
            ),
        ),
        instructions_title="📋 Configuration Summary:",
        instructions=templates.render_dns_instructions,
        usage_extra=(
            "Configuration:",
            f"  Domain: {domain}",
            f"  DNS Server: {settings.dns_server_ip}",
            f"  Target Server: {settings.target_server}",
        ),
    )


PROFILES = {
    "nfs": lambda settings: nfs_profile(settings.nfs),
    "dns": lambda settings: dns_profile(settings.dns),
}


def build_profile(name: str, settings: Settings) -> Profile:
    try:
        factory = PROFILES[name]
    except KeyError:
        raise ValueError(f"unknown profile {name!r}, expected one of {sorted(PROFILES)}") from None
    return factory(settings)
