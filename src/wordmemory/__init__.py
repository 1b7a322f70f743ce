# WordMemory package
