"""Tests for cnf_template module."""

from crtforge.lib.cnf_template import render_alt_names, render_app_cnf


class TestRenderAltNames:
    """Tests for render_alt_names."""

    def test_one_indexed_in_request_order(self) -> None:
        """Names render as DNS.1, DNS.2 in the given order."""
        rendered = render_alt_names(["a.example.com", "b.example.com"])
        assert rendered == "DNS.1 = a.example.com\nDNS.2 = b.example.com"

    def test_order_is_preserved_not_sorted(self) -> None:
        """Indices follow input order even when names are unsorted."""
        rendered = render_alt_names(["z.example.com", "a.example.com"])
        assert rendered.splitlines() == ["DNS.1 = z.example.com", "DNS.2 = a.example.com"]

    def test_empty_list_renders_nothing(self) -> None:
        assert render_alt_names([]) == ""


class TestRenderAppCnf:
    """Tests for render_app_cnf."""

    def test_contains_exactly_the_requested_dns_entries(self) -> None:
        """Rendered config has DNS.1 then DNS.2 and no other DNS entries."""
        cnf = render_app_cnf("web", "web.example.com", ["a.example.com", "b.example.com"])
        dns_lines = [
            line for line in cnf.decode().splitlines() if line.startswith("DNS.")
        ]
        assert dns_lines == ["DNS.1 = a.example.com", "DNS.2 = b.example.com"]

    def test_substitutes_common_and_app_name(self) -> None:
        cnf = render_app_cnf("web", "web.example.com", ["a.example.com"]).decode()
        assert "CN = web.example.com" in cnf
        assert "OU = web" in cnf
        assert "${" not in cnf

    def test_declares_signing_extension_section(self) -> None:
        """The v3_ext section used when signing is present."""
        cnf = render_app_cnf("web", "web.example.com", ["a.example.com"]).decode()
        assert "[ v3_ext ]" in cnf
        assert "subjectAltName         = @alt_names" in cnf

    def test_deterministic(self) -> None:
        """Same inputs render byte-identical output."""
        first = render_app_cnf("web", "cn", ["a", "b"])
        second = render_app_cnf("web", "cn", ["a", "b"])
        assert first == second
