"""
nocdata_pipeline.pipelines — Entity seeders and the run coordinator.

Each seeder module exports an async run(ctx, skip=0) that returns a
BatchResult. seed_all sequences them in dependency order.

    from nocdata_pipeline.pipelines import seed_all

    report = await seed_all.run(only=[Entity.PROGRAMS])
"""
