"""
Tests for configuration file rendering.
"""
from dataclasses import replace
from datetime import datetime

import pytest

from hostctl import templates
from hostctl.config import DEFAULT_EXPORTS, DEFAULT_ROUTES, DEFAULT_SUBDOMAINS, Export, ProxyRoute
from hostctl.models import TemplateVars


@pytest.fixture
def variables():
    return TemplateVars(
        domain="idctech.com",
        target_server="192.168.0.240",
        dns_server_ip="192.168.0.53",
        hostname="nas01",
        server_ip="10.0.0.5",
        generated_at=datetime(2024, 5, 17, 9, 30, 0),
    )


class TestReverseZone:
    def test_splits_address(self):
        assert templates.reverse_zone("192.168.0.240") == ("0.168.192.in-addr.arpa", "240")
        assert templates.reverse_zone("10.1.2.3") == ("2.1.10.in-addr.arpa", "3")

    def test_rejects_non_ipv4(self):
        with pytest.raises(ValueError):
            templates.reverse_zone("fe80::1")


class TestExports:
    def test_one_line_per_export(self):
        text = templates.render_exports(DEFAULT_EXPORTS)
        lines = [line for line in text.splitlines() if line and not line.startswith("#")]
        assert lines == [
            "/nfs/shared     *(rw,sync,no_root_squash,no_subtree_check)",
            "/srv/nfs_share  *(rw,sync,no_root_squash,no_subtree_check)",
        ]

    def test_custom_clients_and_options(self):
        text = templates.render_exports((Export("/data", "10.0.0.0/24", "ro,sync"),))
        assert "/data  10.0.0.0/24(ro,sync)\n" in text


class TestZones:
    def test_serial_comes_from_generation_date(self, variables):
        assert templates.zone_serial(variables) == "2024051701"
        assert "2024051701  ; Serial" in templates.render_forward_zone(variables)

    def test_forward_zone_records(self, variables):
        text = templates.render_forward_zone(variables, DEFAULT_SUBDOMAINS)
        assert "@   IN  SOA ns1.idctech.com. admin.idctech.com. (" in text
        assert "www     IN  A       192.168.0.240" in text
        assert "ns1     IN  A       192.168.0.53" in text
        assert "nsight  IN  A       192.168.0.240" in text
        assert "mail    IN  CNAME   www.idctech.com." in text

    def test_forward_zone_without_subdomains(self, variables):
        assert "subdomains" not in templates.render_forward_zone(variables)

    def test_reverse_zone_ptr(self, variables):
        text = templates.render_reverse_zone(variables)
        assert "240     IN  PTR     www.idctech.com." in text
        assert "240     IN  PTR     ns1.idctech.com." in text

    def test_named_conf_declares_both_zones(self, variables):
        text = templates.render_named_conf(variables)
        assert 'directory "/var/named";' in text
        assert 'zone "idctech.com" IN {' in text
        assert 'file "0.168.192.in-addr.arpa.zone";' in text
        assert text.count("type master;") == 2


class TestVirtualHost:
    def test_root_route_is_last(self, variables):
        routes = (ProxyRoute("/", None),) + DEFAULT_ROUTES[:-1]
        text = templates.render_vhost(variables, routes)
        passes = [line.split()[1] for line in text.splitlines() if line.strip().startswith("ProxyPass ")]
        assert passes[-1] == "/"
        assert passes[0] == "/prom"

    def test_route_urls(self, variables):
        text = templates.render_vhost(variables, DEFAULT_ROUTES, DEFAULT_SUBDOMAINS)
        assert "ProxyPass /prom http://192.168.0.240:9090/" in text
        assert "ProxyPass /nfs http://192.168.0.240/nfs" in text
        assert "ProxyPassReverse / http://192.168.0.240/" in text
        assert "ServerName nsight.idctech.com" in text
        assert "ProxyPass / http://192.168.0.240:3000/" in text
        assert text.count("<VirtualHost *:80>") == 2


def test_rendering_is_deterministic(variables):
    renders = [
        lambda v: templates.render_exports(DEFAULT_EXPORTS),
        lambda v: templates.render_nfs_test_file(v, "/nfs/shared"),
        templates.render_named_conf,
        lambda v: templates.render_forward_zone(v, DEFAULT_SUBDOMAINS),
        templates.render_reverse_zone,
        lambda v: templates.render_vhost(v, DEFAULT_ROUTES, DEFAULT_SUBDOMAINS),
        templates.render_index_html,
    ]
    for render in renders:
        assert render(variables).encode() == render(replace(variables)).encode()


def test_nfs_test_file_describes_server(variables):
    text = templates.render_nfs_test_file(variables, "/nfs/shared")
    assert "- Generated at: 2024-05-17 09:30:00" in text
    assert "- Server IP: 10.0.0.5" in text
    assert "- Share path: /nfs/shared" in text


def test_nfs_instructions(variables):
    text = templates.render_nfs_instructions(variables, DEFAULT_EXPORTS, "192.168.0.240", "test.txt")
    assert "On client servers (192.168.0.240), run these commands:" in text
    assert "mkdir -p /mnt/nfs_shared /mnt/srv_nfs_share" in text
    assert "10.0.0.5:/srv/nfs_share /mnt/srv_nfs_share nfs defaults 0 0" in text
    assert "cat /mnt/nfs_shared/test.txt" in text


def test_dns_instructions(variables):
    text = templates.render_dns_instructions(variables)
    assert "dig @192.168.0.53 www.idctech.com" in text
    assert "echo 'nameserver 192.168.0.53' > /etc/resolv.conf" in text


def test_exports_with_same_basename_get_distinct_mount_points(variables):
    exports = (Export("/a/data"), Export("/b/data"))
    text = templates.render_nfs_instructions(variables, exports, "192.168.0.240", "test.txt")
    assert "10.0.0.5:/a/data /mnt/a_data nfs defaults 0 0" in text
    assert "10.0.0.5:/b/data /mnt/b_data nfs defaults 0 0" in text


def test_flattened_mount_point_collision_gets_suffix(variables):
    exports = (Export("/a_b"), Export("/a/b"))
    text = templates.render_nfs_instructions(variables, exports, "192.168.0.240", "test.txt")
    assert "mkdir -p /mnt/a_b /mnt/a_b_2" in text
    assert "mount -t nfs 10.0.0.5:/a/b /mnt/a_b_2" in text
