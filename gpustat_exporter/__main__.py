from gpustat_exporter.cli import main

main()
