from setuptools import setup, find_packages

setup(
    name='raw-pad',
    version='0.1.0',
    description='Minimal modal terminal text editor with regex syntax highlighting and plugins',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    author='Siergej Sobolewski',
    author_email='s.sobolewski@hotmail.com',
    url='https://github.com/yourusername/raw-pad',
    packages=find_packages(exclude=('tests',)),
    install_requires=[
        'pygments>=2.13.0',
        'toml>=0.10.2',
        'chardet>=5.0.0',
        'wcwidth>=0.2.6',
    ],
    entry_points={
        'console_scripts': [
            'raw-pad = raw_pad.editor:main'
        ]
    },
    include_package_data=True,
    package_data={'raw_pad': ['config.toml']},
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Environment :: Console',
        'Operating System :: POSIX',
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Programming Language :: Python :: 3.11',
    ],
    python_requires='>=3.11',
    license='GPLv3',
)
