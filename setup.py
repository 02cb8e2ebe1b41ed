"""
python -m build
twine upload dist/*
"""

from setuptools import setup, find_packages


def resourceful_setup():
    with open("requirements.txt", "rt") as fp:
        install_requires = fp.read().strip().split("\n")

    version = "0.4.0"

    setup(
        name="resourceful",
        packages=find_packages(exclude=["tests", "tests.*"]),
        version=version,
        license="MIT",
        description="resourceful : convention-driven CRUD handlers and nested route declarations for Flask-SQLAlchemy",
        long_description=open("README.rst").read(),
        long_description_content_type="text/x-rst",
        keywords=["SqlAlchemy", "Flask", "CRUD", "REST", "Routing", "Authorization"],
        python_requires=">=3.8, <4",
        install_requires=install_requires,
        classifiers=[
            "Development Status :: 3 - Alpha",
            "License :: OSI Approved :: MIT License",
            "Intended Audience :: Developers",
            "Framework :: Flask",
            "Topic :: Software Development :: Libraries",
            "Environment :: Web Environment",
            "Programming Language :: Python :: 3.12",
            "Programming Language :: Python :: 3.11",
            "Programming Language :: Python :: 3.10",
            "Programming Language :: Python :: 3.9",
            "Programming Language :: Python :: 3.8",
        ],
        extras_require={"test": ["pytest>=7.0"]},
    )


resourceful_setup()  # pragma: no cover
