from setuptools import setup

setup(
	name='libcourier',
	version='0.1.0',
	description='identity and end2end message layer of the courier messenger',
	license='GPLv3+',
	packages=['libcourier'],
	install_requires=[
		'cryptography>=41.0',
	],
	extras_require={
		'test': ['pytest'],
	},
	python_requires='>=3.8',
	classifiers=[
		"Development Status :: 3 - Alpha",
		"Environment :: Console",

		"Intended Audience :: Developers",
		"Intended Audience :: Education",

		"License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
		'Operating System :: POSIX',
		'Programming Language :: Python :: 3.11',
		'Topic :: Communications :: Chat',
		'Topic :: Security :: Cryptography',
	]
)
