from setuptools import find_packages, setup

deps = [
    "boto3",
    "click",
    "click-aliases",
    "ffmpeg-python",
    "pydantic>=2",
    "pydantic-settings",
    "requests",
]

test_deps = [
    "moto[s3]>=5",
    "pytest",
]

setup(
    name="uploadsio",
    version="0.1.0",
    script_name="setup.py",
    python_requires=">=3.8",
    zip_safe=False,
    install_requires=deps,
    extras_require={"test": test_deps},
    include_package_data=True,
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "uio=uploadsio.cli:cli",
        ],
    },
)
