import setuptools

import addrsym

setuptools.setup(
    name="addrsym",
    version=addrsym.__version__,
    author="mephi42",
    author_email="mephi42@gmail.com",
    description="Resolve addresses in ELF binaries to functions, "
    + "inline chains and source lines",
    packages=[
        "addrsym",
    ],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v2 (GPLv2)",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.8",
    install_requires=[
        "click",
        "pyelftools>=0.30",
        "sortedcontainers",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "addrsym=addrsym.cli:main",
        ],
    },
)
