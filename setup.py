from setuptools import setup, find_packages

setup(
    name='imagesync',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.8',
    install_requires=[
        'Click>=8.0',
        'PyYAML',
        'pydantic>=2',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    entry_points='''
        [console_scripts]
        imagesync=imagesync.cli:cli
    ''',
)
