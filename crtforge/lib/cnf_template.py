"""OpenSSL configuration rendered for each application certificate."""

from collections.abc import Sequence
from string import Template

APP_CNF_TEMPLATE = Template(
    """\
# OpenSSL configuration for the ${appName} application certificate
[ req ]
default_md         = sha256
prompt             = no
distinguished_name = req_distinguished_name
req_extensions     = req_ext

[ req_distinguished_name ]
CN = ${commonName}
OU = ${appName}

[ req_ext ]
subjectAltName = @alt_names

[ v3_ext ]
authorityKeyIdentifier = keyid,issuer
basicConstraints       = critical, CA:FALSE
keyUsage               = critical, digitalSignature, keyEncipherment
extendedKeyUsage       = serverAuth, clientAuth
subjectAltName         = @alt_names

[ alt_names ]
${altNames}
"""
)


def render_alt_names(alt_names: Sequence[str]) -> str:
    """Render DNS.<n> = <name> lines, 1-indexed and in the given order."""
    return "\n".join(f"DNS.{i} = {name}" for i, name in enumerate(alt_names, start=1))


def render_app_cnf(app_name: str, common_name: str, alt_names: Sequence[str]) -> bytes:
    """Substitute the application identity into the config template."""
    return APP_CNF_TEMPLATE.substitute(
        appName=app_name,
        commonName=common_name,
        altNames=render_alt_names(alt_names),
    ).encode("utf-8")
