from setuptools import setup, find_packages

requires = [
    "cryptography >= 42",
    "pyOpenSSL >= 22.0.0",
    "python-dateutil",
]

setup(
    name="devcerts",
    version="0.1.0",
    python_requires=">=3.8",
    description="devcerts",
    long_description="""
devcerts bootstraps a throwaway certificate authority for local TLS testing.

On first run it generates a CA certificate and a server and a client key pair
signed by it, with a subjectAltName covering the configured host name and
127.0.0.1. The server key, server certificate and CA certificate are copied
to the working directory. Once server.key exists, later runs do nothing.
      """,
    classifiers=[
        "Programming Language :: Python",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Testing",
    ],
    keywords="certificates x509 ca cert ssl tls development",
    packages=find_packages(exclude=["tests"]),
    include_package_data=True,
    zip_safe=False,
    test_suite="tests",
    install_requires=requires,
    extras_require={"test": ["pytest"]},
    entry_points="""\
      [console_scripts]
      devcerts_bootstrap = devcerts.scripts.bootstrap:main
      devcerts_show = devcerts.scripts.show:main
      """,
)
