from setuptools import find_packages, setup

README = ""
CHANGES = ""

requires = [
    "fastapi",
    "starlette",
    "uvicorn",
    "jinja2",
    "itsdangerous",
    "requests",
    "vtjson",
]

tests_require = [
    "httpx",
    "pytest",
]

setup(
    name="payfrontend",
    version="0.1",
    description="payfrontend",
    long_description=README + "\n\n" + CHANGES,
    classifiers=[
        "Programming Language :: Python",
        "Framework :: FastAPI",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    author="",
    author_email="",
    url="",
    keywords="web fastapi payments",
    packages=find_packages(include=["payfrontend", "payfrontend.*"]),
    package_data={
        "payfrontend": [
            "templates/*.j2",
            "templates/errors/*.j2",
            "public/*/*",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.11",
    install_requires=requires,
    extras_require={"test": tests_require},
    entry_points={
        "console_scripts": [
            "payfrontend = payfrontend.__main__:main",
        ],
    },
)
