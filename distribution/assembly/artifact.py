"""Export artifact encoding and signing.

The container format is deliberately simple: a canonical JSON document with
the export payload and a detached signature over the payload bytes. Anything
implementing `Signer` can be plugged in.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import Any, Collection, Iterable, Protocol, Sequence

from distribution.domain import DiagnosisKey, ExportBatch, sort_keys


class Signer(Protocol):
    algorithm: str

    def sign(self, payload: bytes) -> bytes:
        """Return a detached signature for `payload`."""


# Signature algorithm label -> digest used for the HMAC
HMAC_ALGORITHMS = {
    "HMAC-SHA256": hashlib.sha256,
    "HMAC-SHA512": hashlib.sha512,
}


class HmacSigner:
    """HMAC signer keyed with a shared secret (SHA-256 unless told otherwise)."""

    def __init__(self, secret: bytes | str, algorithm: str = "HMAC-SHA256"):
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"Unsupported signature algorithm {algorithm!r}; expected one of {sorted(HMAC_ALGORITHMS)}")
        self.algorithm = algorithm
        self._digest = HMAC_ALGORITHMS[algorithm]
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if not secret:
            raise ValueError("Signing secret must not be empty")
        self._secret = secret

    def sign(self, payload: bytes) -> bytes:
        return hmac.new(self._secret, payload, self._digest).digest()

    def verify(self, payload: bytes, signature: bytes) -> bool:
        return hmac.compare_digest(self.sign(payload), signature)


def _canonical(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _key_record(key: DiagnosisKey) -> dict:
    return {
        "key_data": base64.b64encode(key.key_data).decode("ascii"),
        "rolling_period": key.rolling_period,
        "rolling_start_number": key.rolling_start_number,
        "submission_timestamp": key.submission_timestamp,
        "transmission_risk_level": key.transmission_risk_level,
    }


@dataclass(frozen=True)
class ExportArtifactEncoder:
    signer: Signer

    def payload(
        self,
        keys: Collection[DiagnosisKey],
        *,
        region: str,
        start_hour: int,
        end_hour: int,
        batches: Iterable[ExportBatch] = (),
    ) -> dict:
        batch_info = sorted((b.describe() for b in batches), key=lambda d: (d["config_id"], d["from"], d["thru"]))
        return {
            "region": region,
            "start_timestamp": start_hour,
            "end_timestamp": end_hour,
            "batches": batch_info,
            "keys": [_key_record(k) for k in sort_keys(keys)],
        }

    def encode(
        self,
        keys: Collection[DiagnosisKey],
        *,
        region: str,
        start_hour: int,
        end_hour: int,
        batches: Sequence[ExportBatch] = (),
    ) -> bytes:
        payload = self.payload(keys, region=region, start_hour=start_hour, end_hour=end_hour, batches=batches)
        payload_bytes = _canonical(payload)
        signature = self.signer.sign(payload_bytes)
        return _canonical(
            {
                "export": payload,
                "signature": {
                    "algorithm": self.signer.algorithm,
                    "value": base64.b64encode(signature).decode("ascii"),
                },
            }
        )


def decode_artifact(data: bytes) -> dict:
    """Parse an artifact produced by `ExportArtifactEncoder.encode`."""

    return json.loads(data.decode("utf-8"))


def verify_artifact(data: bytes, signer: HmacSigner) -> bool:
    document = decode_artifact(data)
    signature = base64.b64decode(document["signature"]["value"])
    return signer.verify(_canonical(document["export"]), signature)
