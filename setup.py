from setuptools import setup, find_packages

setup(
    name="ppg_beat",
    version="0.1.0",
    description="Real-time heart-rate estimation from filtered PPG samples",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
    ],
    extras_require={
        "dev": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "ppg-beat=main:main",
        ]
    },
)
