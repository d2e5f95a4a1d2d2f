from setuptools import find_namespace_packages, setup

setup(
    name="polyui",
    version="0.1.0",
    description="Compile one UI component description into Qwik, React and React Native source",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["polyui*"]),
    python_requires=">=3.10",
    install_requires=[
        "json5>=0.9",
        "rich>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    zip_safe=False,
)
