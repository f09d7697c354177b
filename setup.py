from setuptools import setup, find_packages

setup(
    name="econcomplex",
    version="0.1.0",
    description="Economic complexity: Balassa index, complexity indices, proximity and outlook",
    author="Centro Fermi",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "scipy",
        "pandas",
        "networkx>=2.8",
        "tqdm"
    ],
    extras_require={
        "tests": ["pytest"],
    },
    python_requires=">=3.8",
)
