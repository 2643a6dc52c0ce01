import re
import shlex

from hostctl.models import Host


def _parse_host_line(line: str, group: str) -> Host:
    tokens = shlex.split(line, comments=True)
    host = Host(address=tokens[0], group=group)
    for token in tokens[1:]:
        key, sep, value = token.partition("=")
        if not sep:
            continue
        if key == "ansible_host":
            host.address = value
        elif key == "ansible_user":
            host.user = value
        elif key == "ansible_port":
            host.port = int(value)
    return host


def load_inventory(path: str, group: str | None = None) -> list[Host]:
    """Hosts from an Ansible INI inventory, optionally limited to one group.

    Only ``ansible_host``, ``ansible_user`` and ``ansible_port`` are honoured;
    ``[group:vars]`` and ``[group:children]`` sections are ignored.
    """
    hosts = []
    current_group = "ungrouped"
    in_hosts_section = True

    with open(path) as f:
        for raw_line in f:
            line = raw_line.strip()
            if not line or line.startswith("#") or line.startswith(";"):
                continue

            group_match = re.match(r"^\[([^\]]+)\]", line)
            if group_match:
                current_group = group_match.group(1)
                in_hosts_section = ":" not in current_group
                continue
            if not in_hosts_section:
                continue

            host = _parse_host_line(line, current_group)
            if group is None or host.group == group:
                hosts.append(host)

    return hosts
