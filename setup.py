from setuptools import find_packages, setup

setup(
    name="jetclient",
    packages=find_packages("src"),
    package_dir={"": "src"},
    version="0.1.0",
    license="MIT",
    long_description="",
    long_description_content_type="text/markdown",
    description="An authenticated request client for the Jet merchant API",
    keywords=["Jet", "Jet.com", "merchant API", "API Wrapper"],
    python_requires=">=3.10",
    install_requires=["httpx>=0.27", "tenacity>=8.2"],
    extras_require={"test": ["pytest"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
