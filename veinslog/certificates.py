"""Certificate-store helpers: artifact lookup and ca_info.txt parsing.

Node layout under the store root:
  <nodeId>/{cert.pem|certificate.pem|public_key.pem}
  <nodeId>/{private.key|key.pem|private_key.pem}
  <nodeId>/ca_info.txt
  <nodeId>/requests/*.csr
"""

import logging
import os

logger = logging.getLogger(__name__)

CERT_FILES = ("cert.pem", "certificate.pem", "public_key.pem")
KEY_FILES = ("private.key", "key.pem", "private_key.pem")
CA_INFO_FILE = "ca_info.txt"
REQUESTS_DIR = "requests"
REQUEST_EXTENSIONS = (".csr", ".req")

_CA_INFO_PREFIXES = (
    ("Certificate Subject:", "subject"),
    ("Certificate Issuer:", "issuer"),
    ("Certificate Serial Number:", "serialNumber"),
    ("Issued Date:", "issuedDate"),
)


def parse_ca_info(content: str) -> dict:
    """Pick the known 'Prefix: value' lines out of ca_info.txt. First match wins."""
    info: dict = {}
    for line in content.splitlines():
        for prefix, key in _CA_INFO_PREFIXES:
            if key in info or prefix not in line:
                continue
            value = line.split(prefix, 1)[1].strip()
            if key == "issuedDate" and value.isdigit():
                info[key] = int(value)
            else:
                info[key] = value
    return info


def existing_files(node_dir: str, candidates: tuple[str, ...]) -> list[str]:
    return [name for name in candidates if os.path.isfile(os.path.join(node_dir, name))]


def first_existing(node_dir: str, candidates: tuple[str, ...]) -> str | None:
    """Path of the first candidate present in *node_dir*, in candidate order."""
    for name in candidates:
        path = os.path.join(node_dir, name)
        if os.path.isfile(path):
            return path
    return None


def find_csr_files(node_dir: str) -> list[str]:
    """Request files relative to *node_dir*, from the node dir and requests/."""
    found = []
    for sub in ("", REQUESTS_DIR):
        directory = os.path.join(node_dir, sub) if sub else node_dir
        try:
            names = sorted(os.listdir(directory))
        except OSError:
            continue
        for name in names:
            if name.lower().endswith(REQUEST_EXTENSIONS):
                found.append(os.path.join(sub, name) if sub else name)
    return found


def read_text(path: str | None) -> str | None:
    """Read a text artifact; a vanished or unreadable file is a soft miss."""
    if path is None:
        return None
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        logger.warning("Failed to read %s: %s", path, e)
        return None


def read_ca_info(node_dir: str) -> dict | None:
    content = read_text(first_existing(node_dir, (CA_INFO_FILE,)))
    if content is None:
        return None
    return parse_ca_info(content)
