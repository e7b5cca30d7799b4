#! /usr/bin/env python3
# vim: expandtab shiftwidth=4 softtabstop=4 tabstop=17 filetype=python :
"""Key, request and certificate primitives for the local development CA."""

import datetime
import enum
import getpass
import ipaddress
import logging
import os
import re

import dateutil.parser
import OpenSSL.crypto as _crypto
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

LOG = logging.getLogger(__name__)

CLIENT_BITS = 2048
CA_BITS = 2048
PUBLIC_EXPONENT = 65537
# Bit strength => hash strength. Based on hash strenghts
HASH = {1024: hashes.SHA1,
        2048: hashes.SHA256,
        4096: hashes.SHA512}

CA_DAYS = 356
CLIENT_DAYS = 365
LOOPBACK = "127.0.0.1"

NAME_OIDS = {"C": NameOID.COUNTRY_NAME,
             "ST": NameOID.STATE_OR_PROVINCE_NAME,
             "L": NameOID.LOCALITY_NAME,
             "O": NameOID.ORGANIZATION_NAME,
             "OU": NameOID.ORGANIZATIONAL_UNIT_NAME,
             "CN": NameOID.COMMON_NAME}

SUBJECT_MATCH = {"C": "XX",
                 "ST": "StateName",
                 "L": "CityName",
                 "O": "CompanyName",
                 "OU": "CompanySectionName"}
ATTRIBS_TO_KEEP = tuple(SUBJECT_MATCH.keys()) + ('CN', )

CA_EXTENSIONS = [
    # Key usage for a CA cert.
    (x509.BasicConstraints(ca=True, path_length=0), True),
    (x509.KeyUsage(digital_signature=False, content_commitment=False,
                   key_encipherment=False, data_encipherment=False,
                   key_agreement=False, key_cert_sign=True, crl_sign=True,
                   encipher_only=False, decipher_only=False), True),
]

CLIENT_EXTENSIONS = [
    (x509.BasicConstraints(ca=False, path_length=None), True),
    (x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]), True),
]
SERVER_EXTENSIONS = [
    (x509.BasicConstraints(ca=False, path_length=None), True),
    (x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), True),
]
TYPE_EXTENSIONS = {"client": CLIENT_EXTENSIONS,
                   "server": SERVER_EXTENSIONS}

# Hostname label after IDNA conversion, "_" is tolerated like openssl does
_DNS_LABEL = re.compile(r"^(?!-)[a-z0-9_-]{1,63}(?<!-)$")
WILDCARD = "*"


class SubjectAltNameKinds(enum.Enum):
    DNS = "DNS"
    IP = "IP"


class SubjectAltName(object):
    """A single subjectAltName entry. Only DNS and IP entries are issued."""

    def __init__(self, kind, value):
        if kind is SubjectAltNameKinds.DNS:
            self.value = self.normalise_dns(value)
        elif kind is SubjectAltNameKinds.IP:
            self.value = self.convert_ip(value)
        else:
            raise ValueError("Unsupported subjectAltName kind: {}".format(kind))
        self.kind = kind

    @staticmethod
    def convert_ip(value):
        return ipaddress.ip_address(value).exploded

    @staticmethod
    def convert_dns(value):
        """IDNA-encodes a hostname, returning the ascii form as str"""
        if isinstance(value, bytes):
            value = value.decode("ascii")
        try:
            converted = value.lower().encode("idna").decode("ascii")
        except UnicodeError as exc:
            raise ValueError("Invalid DNS name: {!r}".format(value)) from exc
        labels = converted.split(".")
        # A wildcard is only allowed as the whole leftmost label
        if labels[0] == WILDCARD and len(labels) > 1:
            labels = labels[1:]
        for label in labels:
            if not _DNS_LABEL.match(label):
                raise ValueError("Invalid DNS name: {!r}".format(value))
        return converted

    @classmethod
    def normalise_dns(cls, value):
        if not isinstance(value, str):
            raise ValueError("DNS names need to be text")
        cls.convert_dns(value)
        return value.lower()

    def general_name(self):
        if self.kind is SubjectAltNameKinds.DNS:
            return x509.DNSName(self.convert_dns(self.value))
        return x509.IPAddress(ipaddress.ip_address(self.value))

    def __str__(self):
        return "{}:{}".format(self.kind.value, self.value)


def subject_alt_names(common_name):
    """DNS:<common_name>, IP:127.0.0.1"""
    return [SubjectAltName(SubjectAltNameKinds.DNS, common_name),
            SubjectAltName(SubjectAltNameKinds.IP, LOOPBACK)]


def ca_common_name():
    """"<user>'s Cert Authority", with an empty user when the login name is
    unknown"""
    try:
        user = getpass.getuser()
    except (OSError, KeyError):
        LOG.warning("Could not determine the user name for the CA")
        user = ""
    return "{}'s Cert Authority".format(user)


def _now():
    now = datetime.datetime.now(tz=datetime.timezone.utc)
    return now.replace(microsecond=0)


def _name(template):
    return x509.Name([x509.NameAttribute(NAME_OIDS[k], v)
                      for k, v in template.items()])


def components(name):
    """Returns the attributes of an x509.Name we know about as a dict"""
    short_names = {oid: short for short, oid in NAME_OIDS.items()}
    return {short_names[attr.oid]: attr.value
            for attr in name if attr.oid in short_names}


def matching_template(req, template):
    """ Takes a subject as a dict, and returns if all required fields
    match. Otherwise raises exception"""

    subject = components(req.subject)
    # build a new dict of all things in subject that match the template.
    # If our intersect is equal to the template, they were all correct.
    intersect = {k: v for k, v in template.items()
                 if k in subject and v == subject[k]}
    if not intersect == template:
        raise ValueError("Subject either has missing or invalid keys")


def create_key(bits=CLIENT_BITS):
    return rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT,
                                    key_size=bits)


def request_subject(template):
    """The fixed subject fields plus template, as an x509.Name. Raises
    ValueError for values x509 does not allow, e.g. a CN over 64 chars"""
    subject = dict(SUBJECT_MATCH)
    subject.update(template)
    subject = {k: subject[k] for k in ATTRIBS_TO_KEEP if subject.get(k)}
    return _name(subject)


def create_req(template, key=None):
    if not key:
        key = create_key(CLIENT_BITS)

    req = (x509.CertificateSigningRequestBuilder()
           .subject_name(request_subject(template))
           .sign(key, HASH[key.key_size]()))
    return key, req


def create_ca(common_name=None, days=CA_DAYS):
    """Self-signed CA key and certificate"""
    if common_name is None:
        common_name = ca_common_name()
    key = create_key(CA_BITS)
    subject = _name({"CN": common_name})
    now = _now()

    builder = (x509.CertificateBuilder()
               .subject_name(subject)
               .issuer_name(subject)
               .public_key(key.public_key())
               .serial_number(x509.random_serial_number())
               .not_valid_before(now)
               .not_valid_after(now + datetime.timedelta(days=days)))
    for extension, critical in CA_EXTENSIONS:
        builder = builder.add_extension(extension, critical=critical)

    builder = builder.add_extension(
        x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
        critical=False)
    builder = builder.add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(key.public_key()),
        critical=False)

    cert = builder.sign(key, HASH[key.key_size]())
    return key, cert


def sign_req(req, cacert, cakey, Type="client", serial=None,
             days=CLIENT_DAYS, alt_names=None):
    if Type not in TYPE_EXTENSIONS:
        raise ValueError("Mismatched type.")

    # Validate Subject contents
    matching_template(req, SUBJECT_MATCH)

    # Validate signature
    if not req.is_signature_valid:
        raise ValueError("Invalid Request")

    if alt_names is None:
        common_name = components(req.subject).get("CN")
        if not common_name:
            raise ValueError("Request has no CN")
        alt_names = subject_alt_names(common_name)
    if serial is None:
        serial = x509.random_serial_number()

    now = _now()
    builder = (x509.CertificateBuilder()
               .subject_name(req.subject)
               .issuer_name(cacert.subject)
               .public_key(req.public_key())
               .serial_number(serial)
               .not_valid_before(now)
               .not_valid_after(now + datetime.timedelta(days=days)))

    # Extensions for control
    for extension, critical in TYPE_EXTENSIONS[Type]:
        builder = builder.add_extension(extension, critical=critical)

    builder = builder.add_extension(
        x509.SubjectAlternativeName([n.general_name() for n in alt_names]),
        critical=False)
    builder = builder.add_extension(
        x509.SubjectKeyIdentifier.from_public_key(req.public_key()),
        critical=False)
    builder = builder.add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(
            cacert.public_key()),
        critical=False)

    bits = req.public_key().key_size
    return builder.sign(cakey, HASH[bits]())


def serial_path(ca_crt):
    """Where the serial file of a CA certificate lives, ca.crt => ca.srl"""
    return os.path.splitext(ca_crt)[0] + ".srl"


def next_serial(path):
    """Reads, increments and stores the hex serial in path. A missing file is
    created with a random serial."""
    if os.path.exists(path):
        with open(path, "rt") as f:
            serial = int(f.read().strip(), 16) + 1
    else:
        serial = x509.random_serial_number()
    with open(path, "wt") as f:
        f.write("{:X}\n".format(serial))
    return serial


def _writefile(data, name, mode=0o644):
    fd = os.open(name, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with open(fd, "wb") as f:
        f.write(data)


def write_key(key, name):
    data = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    _writefile(data, name, mode=0o600)


def write_req(req, name):
    _writefile(req.public_bytes(serialization.Encoding.PEM), name)


def write_cert(cert, name):
    _writefile(cert.public_bytes(serialization.Encoding.PEM), name)


def load_key(name):
    with open(name, "rb") as f:
        return serialization.load_pem_private_key(f.read(), password=None)


def load_req(name):
    with open(name, "rb") as f:
        return x509.load_pem_x509_csr(f.read())


def load_cert(name):
    with open(name, "rb") as f:
        return x509.load_pem_x509_certificate(f.read())


def verify_chain(certfile, cafile):
    """Verifies that the certificate in certfile was issued by the CA in
    cafile. Raises ValueError otherwise."""
    with open(cafile, "rt") as f:
        cacert = _crypto.load_certificate(_crypto.FILETYPE_PEM, f.read())
    with open(certfile, "rt") as f:
        cert = _crypto.load_certificate(_crypto.FILETYPE_PEM, f.read())

    store = _crypto.X509Store()
    store.add_cert(cacert)
    try:
        _crypto.X509StoreContext(store, cert).verify_certificate()
    except _crypto.X509StoreContextError as exc:
        raise ValueError("{} does not verify against {}: {}".format(
            certfile, cafile, exc)) from exc


def validity(pem):
    """notBefore and notAfter of a PEM certificate, as aware datetimes"""
    cert = _crypto.load_certificate(_crypto.FILETYPE_PEM, pem)
    not_before = dateutil.parser.parse(cert.get_notBefore().decode("ascii"))
    not_after = dateutil.parser.parse(cert.get_notAfter().decode("ascii"))
    return not_before, not_after


def alt_names_of(cert):
    """subjectAltName entries of a certificate as "DNS:x" / "IP:y" strings"""
    try:
        ext = cert.extensions.get_extension_for_class(
            x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    names = ["DNS:" + n for n in ext.value.get_values_for_type(x509.DNSName)]
    names += ["IP:" + str(n)
              for n in ext.value.get_values_for_type(x509.IPAddress)]
    return names


def describe(cert):
    """Human oriented summary of a certificate"""
    not_before, not_after = validity(
        cert.public_bytes(serialization.Encoding.PEM))
    return {
        "subject": cert.subject.rfc4514_string(),
        "issuer": cert.issuer.rfc4514_string(),
        "serial": "{:X}".format(cert.serial_number),
        "not_before": not_before,
        "not_after": not_after,
        "key_bits": cert.public_key().key_size,
        "alt_names": alt_names_of(cert),
    }
