from setuptools import setup, find_packages

setup(
    name="uiauto-mobile",
    version="1.0.0",
    packages=find_packages(include=["uiauto_mobile", "uiauto_mobile.*"]),
    install_requires=[
        "pyyaml>=5.4",
        "jsonschema>=4.0.0",
        "Appium-Python-Client>=3.0.0",
        "selenium>=4.10.0",
        "pillow>=8.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    package_data={
        "uiauto_mobile": ["schemas/*.json"],
    },
    entry_points={
        "console_scripts": [
            "uiauto-mobile=uiauto_mobile.cli:main",
        ],
    },
)
