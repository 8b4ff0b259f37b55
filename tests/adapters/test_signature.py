from __future__ import annotations

from zapdesk.adapters.whatsapp.signature import (
    SIGNATURE_HEADER,
    SignatureCheck,
    check_signature,
    sign_body,
)

BODY = b'{"entry": []}'
SECRET = "app-secret"


class TestCheckSignature:
    def test_valid(self):
        headers = {SIGNATURE_HEADER: sign_body(BODY, SECRET)}

        result = check_signature(BODY, headers, SECRET)

        assert result == SignatureCheck.VALID
        assert result.accepted

    def test_skipped_without_secret(self):
        result = check_signature(BODY, {}, None)

        assert result == SignatureCheck.SKIPPED
        assert result.accepted

    def test_missing_header(self):
        assert check_signature(BODY, {}, SECRET) == SignatureCheck.MISSING

    def test_malformed_header(self):
        headers = {SIGNATURE_HEADER: "md5=abc"}
        assert check_signature(BODY, headers, SECRET) == SignatureCheck.MALFORMED

    def test_tampered_body(self):
        headers = {SIGNATURE_HEADER: sign_body(BODY, SECRET)}

        result = check_signature(b'{"entry": [1]}', headers, SECRET)

        assert result == SignatureCheck.MISMATCH
        assert not result.accepted
