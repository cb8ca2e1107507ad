from setuptools import setup, find_packages

setup(
    name="market-indicator-forecasting",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*", "scripts"]),
    py_modules=["models", "run_forecast"],
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "statsmodels",
        "arch",
        "pmdarima",
        "matplotlib",
        "seaborn",
        "tqdm",
        "psutil",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
)
