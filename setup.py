from setuptools import setup


setup(
    name='combindex',
    version='1.0',
    packages=['combindex'],
    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'sortedcontainers',
        'structlog',
        'tqdm',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
                    'combindex = combindex.cli:main',
                ]
    },
    zip_safe=False,
)
