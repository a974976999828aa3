"""Certificate-store parser.

Only files inside <store root>/<nodeId>/ are considered. Each node
directory yields, whatever file in it triggered the parse:
  * one "certificate updated" event            (t)
  * one "private key verified" event, if a key (t + 1s)
  * one "CSR processed" event per request file (t + 2s, t + 3s, ...)

Certificate metadata comes from ca_info.txt when present; otherwise fixed
placeholder values are used and flagged metadataSource="placeholder".
"""

import logging
import os
import re
from datetime import timedelta

from veinslog.certificates import (
    CERT_FILES,
    KEY_FILES,
    existing_files,
    find_csr_files,
    read_ca_info,
)
from veinslog.normalizer import make_event, offset_iso, parse_timestamp, to_iso
from veinslog.parsers.base import BaseParser, STEP_SECONDS

logger = logging.getLogger(__name__)

_NODE_PATH_RE = re.compile(r"(?:^|[\\/])nodes[\\/]([^\\/]+)[\\/]")

PLACEHOLDER_ISSUER = 'CN = "CN=Veins CA,O=Veins Project,C=US"'
PLACEHOLDER_FINGERPRINT = "A1:B2:C3:D4:E5:F6:78:90:AB:CD:EF:12:34:56:78:90:AB:CD:EF:12"
PLACEHOLDER_KEY_SIZE = "2048"
VALIDITY_DAYS = 365


def locate_node(path: str, root: str | None = None) -> tuple[str, str] | None:
    """Return (node_id, node_dir) for a file inside a node directory.

    With *root* (the store directory) the node is the first path component
    below it. Without one, the last whole 'nodes' component in *path* marks
    the store.
    """
    if root:
        rel = os.path.relpath(os.path.abspath(path), os.path.abspath(root))
        parts = rel.replace("\\", "/").split("/")
        if len(parts) < 2 or parts[0] in (os.curdir, os.pardir):
            return None
        return parts[0], os.path.join(root, parts[0])

    matches = list(_NODE_PATH_RE.finditer(path))
    if not matches:
        return None
    m = matches[-1]
    return m.group(1), path[:m.end() - 1]


def certificate_info(node_dir: str, node_id: str, base_time) -> dict:
    cert_files = existing_files(node_dir, CERT_FILES)
    key_files = existing_files(node_dir, KEY_FILES)
    csr_files = find_csr_files(node_dir)

    info = {
        "subject": f"CN = {node_id}, O = Veins V2X Network, C = DE, L = Erlangen",
        "issuer": PLACEHOLDER_ISSUER,
        "serialNumber": "01",
        "issuedDate": to_iso(base_time),
        "validFrom": to_iso(base_time),
        "validTo": to_iso(base_time + timedelta(days=VALIDITY_DAYS)),
        "fingerprint": PLACEHOLDER_FINGERPRINT,
        "keySize": PLACEHOLDER_KEY_SIZE,
        "metadataSource": "placeholder",
    }

    ca_info = read_ca_info(node_dir)
    if ca_info:
        if "issuedDate" in ca_info:
            ca_info["issuedDate"] = parse_timestamp(ca_info["issuedDate"]) or info["issuedDate"]
        info.update(ca_info)
        info["metadataSource"] = "ca_info"

    info.update({
        "hasCertificate": bool(cert_files),
        "hasPrivateKey": bool(key_files),
        "hasCSR": bool(csr_files),
        "certFiles": cert_files,
        "keyFiles": key_files,
        "csrFiles": csr_files,
    })
    return info


class CertificateParser(BaseParser):
    source_type = "certificate"
    directory_scoped = True

    def __init__(self, root: str | None = None):
        self._root = root

    def locate(self, path: str) -> tuple[str, str] | None:
        try:
            return locate_node(path, self._root)
        except ValueError:
            # relpath across drives
            return None

    def select_representatives(self, paths: list[str]) -> list[str]:
        """Keep one file per node directory: the newest non-empty one if any."""
        best: dict[str, tuple[tuple[bool, float], str]] = {}
        for path in paths:
            located = self.locate(path)
            if located is None:
                continue
            try:
                stat = os.stat(path)
            except OSError as e:
                logger.debug("Skipping %s: %s", path, e)
                continue
            rank = (stat.st_size > 0, stat.st_mtime)
            node_dir = located[1]
            if node_dir not in best or rank > best[node_dir][0]:
                best[node_dir] = (rank, path)
        return [path for _, path in best.values()]

    def _parse(self, content, file_info):
        located = self.locate(file_info.path)
        if located is None:
            return []
        node_id, node_dir = located
        base = file_info.modified_time
        info = certificate_info(node_dir, node_id, base)

        events = [make_event(
            id_seed=f"ca_cert_{node_id}",
            position=0,
            timestamp=to_iso(base),
            level="INFO",
            source="ca.certificate.manager",
            message=f"Certificate management - certificate info updated for node {node_id}",
            node_id=node_id,
            source_type=self.source_type,
            filename=file_info.name,
            file_path=file_info.path,
            line_number=1,
            certificate_info=info,
        )]

        if info["keyFiles"]:
            key_name = info["keyFiles"][0]
            events.append(make_event(
                id_seed=f"ca_key_{node_id}",
                position=1,
                timestamp=offset_iso(base, STEP_SECONDS),
                level="DEBUG",
                source="ca.key.manager",
                message=f"Key management - private key verified for node {node_id}",
                node_id=node_id,
                source_type=self.source_type,
                filename=key_name,
                file_path=os.path.join(node_dir, key_name),
                line_number=1,
                certificate_info=info,
            ))

        for index, csr in enumerate(info["csrFiles"]):
            events.append(make_event(
                id_seed=f"ca_csr_{node_id}_{index}",
                position=index + 2,
                timestamp=offset_iso(base, (index + 2) * STEP_SECONDS),
                level="INFO",
                source="ca.request.processor",
                message=f"Certificate request processed - {csr} for node {node_id}",
                node_id=node_id,
                source_type=self.source_type,
                filename=os.path.basename(csr),
                file_path=os.path.join(node_dir, csr),
                line_number=1,
                certificate_info=info,
            ))

        return events
