"""Rendering of the configuration files written by the NFS and DNS profiles.

Every function here is pure: the same arguments always give the same text.
Writing the result to disk is the orchestrator's job.
"""
from __future__ import annotations

from hostctl.config import Export, ProxyRoute, Subdomain
from hostctl.models import TemplateVars

RULE = "=" * 80
THIN_RULE = "-" * 80

EXPORTS_DISABLED = "# NFS exports disabled by nfs-manager\n"
VHOST_DISABLED = "# Virtual host disabled by dns-manager\n"


def reverse_zone(ip: str) -> tuple[str, str]:
    """Split an IPv4 address into its /24 reverse zone and PTR label.

    >>> reverse_zone("192.168.0.240")
    ('0.168.192.in-addr.arpa', '240')
    """
    octets = ip.split(".")
    if len(octets) != 4:
        raise ValueError(f"not an IPv4 address: {ip!r}")
    return ".".join(reversed(octets[:3])) + ".in-addr.arpa", octets[3]


def zone_serial(v: TemplateVars) -> str:
    return v.generated_at.strftime("%Y%m%d") + "01"


# NFS


def render_exports(exports: tuple[Export, ...]) -> str:
    lines = [
        "# NFS Export Configuration",
        "# Format: directory client(options)",
        "",
    ]
    width = max(len(e.path) for e in exports) + 2
    for export in exports:
        lines.append(f"{export.path.ljust(width)}{export.clients}({export.options})")
    return "\n".join(lines) + "\n"


def render_nfs_test_file(v: TemplateVars, share_path: str) -> str:
    stamp = v.generated_at.strftime("%Y-%m-%d %H:%M:%S")
    return f"""{RULE}
NFS share test file
{RULE}

This file was written to check that the NFS export is mounted and shared.

If you can read it from a client, the share between the NFS server and the
client is working.

{THIN_RULE}
[Server]
- Generated at: {stamp}
- Hostname: {v.hostname}
- Server IP: {v.server_ip}
- Share path: {share_path}
{THIN_RULE}
"""


def mount_point(export_path: str) -> str:
    """Client mount point for an export, unique per export path.

    >>> mount_point("/nfs/shared")
    '/mnt/nfs_shared'
    """
    return "/mnt/" + export_path.strip("/").replace("/", "_")


def render_nfs_instructions(
    v: TemplateVars,
    exports: tuple[Export, ...],
    client_hint: str,
    test_file: str,
) -> str:
    mounts = []
    taken: set[str] = set()
    for export in exports:
        mount = base = mount_point(export.path)
        n = 1
        while mount in taken:
            n += 1
            mount = f"{base}_{n}"
        taken.add(mount)
        mounts.append((export.path, mount))
    lines = [
        f"On client servers ({client_hint}), run these commands:",
        "",
        "# Install NFS client",
        "yum install nfs-utils -y",
        "",
        "# Create mount points",
        "mkdir -p " + " ".join(m for _, m in mounts),
        "",
        "# Mount NFS shares",
    ]
    lines += [f"mount -t nfs {v.server_ip}:{path} {mount}" for path, mount in mounts]
    lines += [
        "",
        "# Verify mounts",
        "df -h | grep nfs",
        f"ls -la {mounts[0][1]}/",
        f"cat {mounts[0][1]}/{test_file}",
        "",
        "# For permanent mounts, add to /etc/fstab:",
    ]
    lines += [f"{v.server_ip}:{path} {mount} nfs defaults 0 0" for path, mount in mounts]
    return "\n".join(lines) + "\n"


# DNS

SOA_HEADER = """$TTL 86400
@   IN  SOA ns1.{domain}. admin.{domain}. (
        {serial}  ; Serial
        3600            ; Refresh
        1800            ; Retry
        604800          ; Expire
        86400           ; Minimum TTL
)

; Name servers
@       IN  NS      ns1.{domain}.
@       IN  NS      ns2.{domain}.
"""

NAMED_OPTIONS = """options {
    listen-on port 53 { any; };
    listen-on-v6 port 53 { ::1; };
    directory "ZONE_DIR";
    dump-file "ZONE_DIR/data/cache_dump.db";
    statistics-file "ZONE_DIR/data/named_stats.txt";
    memstatistics-file "ZONE_DIR/data/named_mem_stats.txt";
    allow-query { any; };
    allow-recursion { any; };
    recursion yes;
    dnssec-enable yes;
    dnssec-validation yes;
    bindkeys-file "/etc/named.root.key";
    managed-keys-directory "ZONE_DIR/dynamic";
    pid-file "/run/named/named.pid";
    session-keyfile "/run/named/session.key";
};

logging {
    channel default_debug {
        file "data/named.run";
        severity dynamic;
    };
};

zone "." IN {
    type hint;
    file "named.ca";
};

include "/etc/named.rfc1912.zones";
include "/etc/named.root.key";
"""


def _master_zone(name: str) -> str:
    return f"""
zone "{name}" IN {{
    type master;
    file "{name}.zone";
    allow-update {{ none; }};
}};
"""


def render_named_conf(v: TemplateVars, zone_dir: str = "/var/named") -> str:
    reverse, _ = reverse_zone(v.target_server)
    return (
        NAMED_OPTIONS.replace("ZONE_DIR", zone_dir)
        + "\n// Custom zones"
        + _master_zone(v.domain)
        + _master_zone(reverse)
    )


def render_forward_zone(v: TemplateVars, subdomains: tuple[Subdomain, ...] = ()) -> str:
    lines = [
        SOA_HEADER.format(domain=v.domain, serial=zone_serial(v)),
        "; A records",
        f"@       IN  A       {v.target_server}",
        f"www     IN  A       {v.target_server}",
        f"ns1     IN  A       {v.dns_server_ip}",
        f"ns2     IN  A       {v.dns_server_ip}",
    ]
    if subdomains:
        lines += ["", "; A records for subdomains"]
        lines += [f"{s.name.ljust(7)} IN  A       {v.target_server}" for s in subdomains]
    lines += [
        "",
        "; CNAME records",
        f"ftp     IN  CNAME   www.{v.domain}.",
        f"mail    IN  CNAME   www.{v.domain}.",
    ]
    return "\n".join(lines) + "\n"


def render_reverse_zone(v: TemplateVars) -> str:
    _, label = reverse_zone(v.target_server)
    lines = [
        SOA_HEADER.format(domain=v.domain, serial=zone_serial(v)),
        "; PTR records",
        f"{label.ljust(7)} IN  PTR     www.{v.domain}.",
        f"{label.ljust(7)} IN  PTR     ns1.{v.domain}.",
    ]
    return "\n".join(lines) + "\n"


def _backend_url(target: str, route: ProxyRoute) -> str:
    port = f":{route.port}" if route.port else ""
    return f"http://{target}{port}{route.target_path}"


def render_vhost(
    v: TemplateVars,
    routes: tuple[ProxyRoute, ...],
    subdomains: tuple[Subdomain, ...] = (),
    web_root: str = "/var/www/html",
) -> str:
    # Apache matches ProxyPass in order, so "/" must come last.
    ordered = sorted(routes, key=lambda r: r.path == "/")
    lines = [
        "<VirtualHost *:80>",
        f"    ServerName www.{v.domain}",
        f"    ServerAlias {v.domain}",
        f"    DocumentRoot {web_root}/{v.domain}",
        "",
        "    ProxyPreserveHost On",
    ]
    for route in ordered:
        url = _backend_url(v.target_server, route)
        lines += [
            "",
            f"    ProxyPass {route.path} {url}",
            f"    ProxyPassReverse {route.path} {url}",
        ]
    lines += [
        "",
        f"    ErrorLog logs/{v.domain}_error.log",
        f"    CustomLog logs/{v.domain}_access.log combined",
        "</VirtualHost>",
    ]
    for sub in subdomains:
        host = f"{sub.name}.{v.domain}"
        url = f"http://{v.target_server}:{sub.port}/"
        lines += [
            "",
            f"# Virtual host for {sub.name} subdomain",
            "<VirtualHost *:80>",
            f"    ServerName {host}",
            "",
            "    ProxyPreserveHost On",
            f"    ProxyPass / {url}",
            f"    ProxyPassReverse / {url}",
            "",
            f"    ErrorLog logs/{host}_error.log",
            f"    CustomLog logs/{host}_access.log combined",
            "</VirtualHost>",
        ]
    return "\n".join(lines) + "\n"


def render_index_html(v: TemplateVars) -> str:
    url = f"http://{v.target_server}:80/"
    return f"""<!DOCTYPE html>
<html>
<head>
    <title>{v.domain} - Redirecting...</title>
    <meta http-equiv="refresh" content="0;url={url}">
</head>
<body>
    <h1>Redirecting to {v.target_server}...</h1>
    <p>If you are not automatically redirected, <a href="{url}">click here</a>.</p>
</body>
</html>
"""


def render_dns_instructions(v: TemplateVars) -> str:
    ip = v.dns_server_ip
    return f"""Domain: {v.domain}
DNS Server: {ip}
Target Server: {v.target_server}

Test commands:
dig @{ip} {v.domain}
dig @{ip} www.{v.domain}
curl -H 'Host: {v.domain}' http://{ip}/

Client DNS configuration:
echo 'nameserver {ip}' > /etc/resolv.conf
"""
